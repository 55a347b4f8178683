"""
Client and price table tests, including the delete cascade.
"""

import pytest

from tripdesk.models import ClientPrice, FinancialEntry, Message, Order, OrderItem, SessionToken
from conftest import make_client


def _client_payload(**overrides):
    payload = {
        "legal_name": "Casa Rosa Modas LTDA",
        "trade_name": "Casa Rosa",
        "cnpj": "11.222.333/0001-44",
        "street": "Av. Brasil",
        "number": "500",
        "city": "Fortaleza",
        "state": "CE",
        "phones": "(85) 98888-0000",
        "email": "compras@casarosa.test",
        "contact_person": "Joana",
    }
    payload.update(overrides)
    return payload


class TestClientCrud:
    def test_create_and_get(self, client, admin_headers):
        resp = client.post("/api/clients", json=_client_payload(), headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json
        assert body["trade_name"] == "Casa Rosa"
        assert body["is_active"] is True
        # Stored as typed
        assert body["cnpj"] == "11.222.333/0001-44"

        got = client.get(f"/api/clients/{body['id']}", headers=admin_headers)
        assert got.status_code == 200
        assert got.json["email"] == "compras@casarosa.test"

    def test_duplicate_cnpj_ignores_formatting(self, client, admin_headers):
        client.post("/api/clients", json=_client_payload(), headers=admin_headers)
        resp = client.post("/api/clients", json=_client_payload(cnpj="11222333000144"), headers=admin_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("missing", ["legal_name", "cnpj", "city", "email"])
    def test_required_fields(self, client, admin_headers, missing):
        payload = _client_payload()
        payload.pop(missing)
        assert client.post("/api/clients", json=payload, headers=admin_headers).status_code == 400

    def test_unknown_field_rejected(self, client, admin_headers):
        resp = client.post("/api/clients", json=_client_payload(cnpj_digits="1"), headers=admin_headers)
        assert resp.status_code == 400

    def test_update(self, client, admin_headers, shop):
        resp = client.put(f"/api/clients/{shop.id}", json={"city": "Natal", "is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["city"] == "Natal"
        assert resp.json["is_active"] is False

    def test_update_missing_client(self, client, admin_headers):
        assert client.put("/api/clients/999999", json={"city": "X"}, headers=admin_headers).status_code == 404

    def test_list_search_and_active_filter(self, client, admin_headers, shop):
        client.post("/api/clients", json=_client_payload(), headers=admin_headers)
        client.put(f"/api/clients/{shop.id}", json={"is_active": False}, headers=admin_headers)

        assert len(client.get("/api/clients", headers=admin_headers).json) == 2
        active = client.get("/api/clients?include_inactive=false", headers=admin_headers).json
        assert [c["trade_name"] for c in active] == ["Casa Rosa"]

        by_name = client.get("/api/clients?search=rosa", headers=admin_headers).json
        assert [c["trade_name"] for c in by_name] == ["Casa Rosa"]
        by_cnpj = client.get("/api/clients?search=12.345.678", headers=admin_headers).json
        assert [c["id"] for c in by_cnpj] == [shop.id]


class TestClientPrices:
    def test_upsert_overwrites_size(self, client, admin_headers, shop):
        resp = client.post(f"/api/clients/{shop.id}/prices", json={"size": "P", "price": "9.5"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["price"] == "9.50"

        prices = client.get(f"/api/clients/{shop.id}/prices", headers=admin_headers).json
        assert {p["size"]: p["price"] for p in prices} == {"M": "12.50", "P": "9.50"}

    def test_invalid_price(self, client, admin_headers, shop):
        for body in ({"size": "P", "price": "-1"}, {"size": "", "price": "1"}, {"size": "P"}):
            assert client.post(f"/api/clients/{shop.id}/prices", json=body, headers=admin_headers).status_code == 400

    def test_prices_of_missing_client(self, client, admin_headers):
        assert client.get("/api/clients/999999/prices", headers=admin_headers).status_code == 404


class TestClientDelete:
    def test_cascade(self, client, db_session, admin_headers, shop, shop_headers, catalog, trip):
        client.post(
            "/api/orders",
            json={"client_id": shop.id, "trip_id": trip.id, "items": [{"product_id": catalog[0].id, "quantity": 2}]},
            headers=admin_headers,
        )
        client.post("/api/client/orders", json={"items": [{"product_id": catalog[1].id, "quantity": 1}]}, headers=shop_headers)
        client.post("/api/client/messages", json={"content": "Hello"}, headers=shop_headers)
        entry_id = client.post(
            "/api/finance/entries",
            json={
                "type": "receivable",
                "description": "Order payment",
                "amount": "20.00",
                "due_date": "2024-03-10",
                "category": "Sales",
                "client_id": shop.id,
            },
            headers=admin_headers,
        ).json["id"]
        other = make_client(db_session, cnpj="98.765.432/0001-10", trade_name="Loja Verde")
        other_order_id = client.post(
            "/api/orders",
            json={"client_id": other.id, "trip_id": trip.id, "items": [{"product_id": catalog[0].id, "quantity": 1}]},
            headers=admin_headers,
        ).json["id"]
        client.post("/api/admin/messages", json={"client_id": other.id, "content": "Hi"}, headers=admin_headers)
        shop_id = shop.id

        assert client.delete(f"/api/clients/{shop_id}", headers=admin_headers).status_code == 204

        assert db_session.query(Order).filter_by(client_id=shop_id).count() == 0
        assert db_session.query(OrderItem).filter(OrderItem.order_id != other_order_id).count() == 0
        assert db_session.query(ClientPrice).filter_by(client_id=shop_id).count() == 0
        assert db_session.query(Message).filter_by(client_id=shop_id).count() == 0
        assert db_session.query(SessionToken).filter_by(client_id=shop_id).count() == 0

        entry = db_session.get(FinancialEntry, entry_id)
        assert entry is not None
        assert entry.client_id is None

        # Other clients are untouched
        assert client.get(f"/api/orders/{other_order_id}", headers=admin_headers).status_code == 200
        assert db_session.query(Message).filter_by(client_id=other.id).count() == 1

        # Portal session is gone with the client
        assert client.get("/api/client/me", headers=shop_headers).status_code == 401
        assert client.get(f"/api/clients/{shop_id}", headers=admin_headers).status_code == 404

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/api/clients/999999", headers=admin_headers).status_code == 404
