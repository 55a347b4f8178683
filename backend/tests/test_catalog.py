"""
Product catalog and trip tests.
"""

import pytest


class TestProducts:
    def test_crud(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "Dress", "color": "Blue", "size": "M"}, headers=admin_headers)
        assert resp.status_code == 201
        product_id = resp.json["id"]
        assert resp.json["is_active"] is True

        resp = client.put(f"/api/products/{product_id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["is_active"] is False

        assert client.get(f"/api/products/{product_id}", headers=admin_headers).json["name"] == "Dress"
        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/products/{product_id}", headers=admin_headers).status_code == 404

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Dress", "color": "Blue"},
            {"name": "", "color": "Blue", "size": "M"},
            {"name": "Dress", "color": "Blue", "size": "M", "price": "10"},
        ],
    )
    def test_invalid_payloads(self, client, admin_headers, payload):
        assert client.post("/api/products", json=payload, headers=admin_headers).status_code == 400

    def test_active_only_filter(self, client, admin_headers, catalog):
        everything = client.get("/api/products", headers=admin_headers).json
        active = client.get("/api/products?active_only=true", headers=admin_headers).json
        assert len(everything) == 4
        assert len(active) == 3
        assert all(p["is_active"] for p in active)

    def test_product_in_use_cannot_be_deleted(self, client, admin_headers, shop, catalog, trip):
        product_id = catalog[0].id
        client.post(
            "/api/orders",
            json={"client_id": shop.id, "trip_id": trip.id, "items": [{"product_id": product_id, "quantity": 1}]},
            headers=admin_headers,
        )

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 400
        assert "in use" in resp.json["error"]
        assert client.get(f"/api/products/{product_id}", headers=admin_headers).status_code == 200

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/api/products/999999", headers=admin_headers).status_code == 404


class TestTrips:
    def test_create_defaults_open(self, client, admin_headers):
        resp = client.post("/api/trips", json={"name": "March", "start_date": "2024-03-01"}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["status"] == "open"
        assert resp.json["end_date"] is None

    def test_close_trip(self, client, admin_headers, trip):
        resp = client.put(f"/api/trips/{trip.id}", json={"status": "closed", "end_date": "2024-03-15"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "closed"

        closed = client.get("/api/trips?status=closed", headers=admin_headers).json
        assert [t["id"] for t in closed] == [trip.id]
        assert client.get("/api/trips?status=open", headers=admin_headers).json == []

    def test_end_before_start_rejected(self, client, admin_headers, trip):
        resp = client.put(f"/api/trips/{trip.id}", json={"end_date": "2024-02-01"}, headers=admin_headers)
        assert resp.status_code == 400
        resp = client.post(
            "/api/trips",
            json={"name": "Bad", "start_date": "2024-03-10", "end_date": "2024-03-01"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_invalid_status(self, client, admin_headers):
        resp = client.post(
            "/api/trips", json={"name": "X", "start_date": "2024-03-01", "status": "archived"}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_missing_trip(self, client, admin_headers):
        assert client.get("/api/trips/999999", headers=admin_headers).status_code == 404
        assert client.put("/api/trips/999999", json={"name": "X"}, headers=admin_headers).status_code == 404
