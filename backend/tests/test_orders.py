"""
Order tests.

Covers staff CRUD, read-time pricing from the client price table, portal
submissions, and the approve (with merge) / reject flow.
"""

from datetime import date

import pytest

from tripdesk.models import Order, OrderItem, Trip
from tripdesk.services import order_service
from tripdesk.validation import ConflictError
from conftest import make_client, auth_headers, get_client_token


def _create(client, headers, client_id, trip_id, items, **extra):
    return client.post(
        "/api/orders",
        json={"client_id": client_id, "trip_id": trip_id, "items": items, **extra},
        headers=headers,
    )


def _submit(client, shop_headers, items):
    resp = client.post("/api/client/orders", json={"items": items}, headers=shop_headers)
    assert resp.status_code == 201, resp.json
    return resp.json


class TestStaffOrders:
    def test_create_and_price(self, client, admin_headers, shop, catalog, trip):
        p, m, g = catalog[0], catalog[1], catalog[2]
        resp = _create(client, admin_headers, shop.id, trip.id, [
            {"product_id": p.id, "quantity": 3},
            {"product_id": m.id, "quantity": 2},
            {"product_id": g.id, "quantity": 5},
        ])
        assert resp.status_code == 201
        body = resp.json
        assert body["status"] == "assigned"
        assert body["source"] == "admin"
        assert body["paid"] is False
        assert body["trip_id"] == trip.id

        prices = {i["product_id"]: (i["unit_price"], i["line_total"]) for i in body["items"]}
        assert prices[p.id] == ("10.00", "30.00")
        assert prices[m.id] == ("12.50", "25.00")
        # No price row for size G
        assert prices[g.id] == ("0.00", "0.00")
        assert body["total"] == "55.00"
        assert body["item_count"] == 10

    def test_price_change_reprices_existing_orders(self, client, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [
            {"product_id": catalog[0].id, "quantity": 4},
        ]).json["id"]

        resp = client.post(f"/api/clients/{shop.id}/prices", json={"size": "P", "price": "11.25"}, headers=admin_headers)
        assert resp.status_code == 200

        body = client.get(f"/api/orders/{order_id}", headers=admin_headers).json
        assert body["items"][0]["unit_price"] == "11.25"
        assert body["total"] == "45.00"

    def test_trip_id_required(self, client, admin_headers, shop, catalog):
        resp = client.post(
            "/api/orders",
            json={"client_id": shop.id, "items": [{"product_id": catalog[0].id, "quantity": 1}]},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_trip_is_404(self, client, admin_headers, shop, catalog):
        resp = _create(client, admin_headers, shop.id, 999999, [{"product_id": catalog[0].id, "quantity": 1}])
        assert resp.status_code == 404

    def test_unknown_client_is_404(self, client, admin_headers, catalog, trip):
        resp = _create(client, admin_headers, 999999, trip.id, [{"product_id": catalog[0].id, "quantity": 1}])
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "items",
        [
            [],
            "nope",
            [{"product_id": 1, "quantity": 0}],
            [{"product_id": 1, "quantity": -2}],
            [{"product_id": 1, "quantity": 1.5}],
            [{"product_id": 1, "quantity": 1}, {"product_id": 1, "quantity": 2}],
            [{"product_id": 1, "quantity": 1, "price": "1.00"}],
        ],
    )
    def test_invalid_items(self, client, admin_headers, shop, trip, items):
        resp = _create(client, admin_headers, shop.id, trip.id, items)
        assert resp.status_code == 400

    def test_unknown_product_is_400(self, client, admin_headers, shop, trip):
        resp = _create(client, admin_headers, shop.id, trip.id, [{"product_id": 999999, "quantity": 1}])
        assert resp.status_code == 400

    def test_filters(self, client, db_session, admin_headers, shop, catalog, trip):
        other_trip = Trip(name="Trip 2", start_date=date(2024, 4, 1), status="open")
        db_session.add(other_trip)
        db_session.commit()

        _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}])
        _create(client, admin_headers, shop.id, other_trip.id, [{"product_id": catalog[0].id, "quantity": 1}])

        by_trip = client.get(f"/api/orders?trip_id={trip.id}", headers=admin_headers).json
        assert [o["trip_id"] for o in by_trip] == [trip.id]
        assert len(client.get(f"/api/orders?client_id={shop.id}", headers=admin_headers).json) == 2
        assert client.get("/api/orders?status=pending", headers=admin_headers).json == []
        assert client.get("/api/orders?status=bogus", headers=admin_headers).status_code == 400

    @pytest.mark.parametrize("query", ["trip_id=abc", "client_id=1.5", "trip_id=1&client_id=x"])
    def test_malformed_id_filter_rejected(self, client, admin_headers, shop, catalog, trip, query):
        _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}])
        resp = client.get(f"/api/orders?{query}", headers=admin_headers)
        assert resp.status_code == 400
        assert "must be an integer" in resp.json["error"]

    def test_update_replaces_items(self, client, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [
            {"product_id": catalog[0].id, "quantity": 1},
            {"product_id": catalog[1].id, "quantity": 1},
        ]).json["id"]

        resp = client.put(
            f"/api/orders/{order_id}",
            json={"client_id": shop.id, "items": [{"product_id": catalog[2].id, "quantity": 7}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json
        assert [(i["product_id"], i["quantity"]) for i in body["items"]] == [(catalog[2].id, 7)]
        # trip_id omitted -> unchanged
        assert body["trip_id"] == trip.id
        assert body["status"] == "assigned"

    def test_update_with_null_trip_goes_pending(self, client, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}]).json["id"]
        resp = client.put(
            f"/api/orders/{order_id}",
            json={"client_id": shop.id, "trip_id": None, "items": [{"product_id": catalog[0].id, "quantity": 2}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["trip_id"] is None
        assert resp.json["status"] == "pending"

    def test_delete_removes_items(self, client, db_session, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}]).json["id"]
        assert client.delete(f"/api/orders/{order_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 404
        assert db_session.query(OrderItem).filter_by(order_id=order_id).count() == 0

    def test_payment(self, client, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}]).json["id"]
        resp = client.put(
            f"/api/orders/{order_id}/payment",
            json={"paid": True, "payment_method": "pix", "observation": "paid on delivery"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["paid"] is True
        assert resp.json["payment_method"] == "pix"
        assert resp.json["trip_id"] == trip.id

        assert client.put(f"/api/orders/{order_id}/payment", json={}, headers=admin_headers).status_code == 400
        assert client.put(f"/api/orders/{order_id}/payment", json={"paid": "yes"}, headers=admin_headers).status_code == 400


class TestClientPortalOrders:
    def test_submitted_order_is_pending(self, client, shop_headers, catalog):
        body = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 2}])
        assert body["status"] == "pending"
        assert body["trip_id"] is None
        assert body["source"] == "client"
        assert body["total"] == "20.00"

    def test_inactive_product_rejected(self, client, shop_headers, catalog):
        resp = client.post(
            "/api/client/orders",
            json={"items": [{"product_id": catalog[3].id, "quantity": 1}]},
            headers=shop_headers,
        )
        assert resp.status_code == 400

    def test_client_cannot_choose_trip(self, client, shop_headers, catalog, trip):
        resp = client.post(
            "/api/client/orders",
            json={"items": [{"product_id": catalog[0].id, "quantity": 1}], "trip_id": trip.id},
            headers=shop_headers,
        )
        assert resp.status_code == 400

    def test_client_sees_only_own_orders(self, client, db_session, admin_headers, shop, shop_headers, catalog, trip):
        other = make_client(db_session, cnpj="98.765.432/0001-10", trade_name="Loja Verde")
        _create(client, admin_headers, other.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}])
        _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])

        mine = client.get("/api/client/orders", headers=shop_headers).json
        assert len(mine) == 1
        assert mine[0]["client_id"] == shop.id

        theirs = client.get("/api/client/orders", headers=auth_headers(get_client_token(client, other.cnpj))).json
        assert [o["client_id"] for o in theirs] == [other.id]


class TestApproval:
    def test_pending_list(self, client, admin_headers, shop_headers, catalog):
        _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])
        pending = client.get("/api/admin/pending-orders", headers=admin_headers).json
        assert len(pending) == 1
        assert pending[0]["status"] == "pending"
        assert pending[0]["client"]["trade_name"] == "Loja Azul"

    def test_approve_without_existing_order(self, client, admin_headers, shop_headers, catalog, trip):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 2}])["id"]

        resp = client.post(f"/api/admin/orders/{order_id}/approve", json={"trip_id": trip.id}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == order_id
        assert resp.json["trip_id"] == trip.id
        assert resp.json["status"] == "assigned"
        assert client.get("/api/admin/pending-orders", headers=admin_headers).json == []

    def test_approve_merges_into_existing_order(self, client, db_session, admin_headers, shop, shop_headers, catalog, trip):
        p, m, g = catalog[0], catalog[1], catalog[2]
        existing_id = _create(client, admin_headers, shop.id, trip.id, [
            {"product_id": p.id, "quantity": 3},
            {"product_id": m.id, "quantity": 1},
        ]).json["id"]
        pending_id = _submit(client, shop_headers, [
            {"product_id": p.id, "quantity": 2},
            {"product_id": g.id, "quantity": 4},
        ])["id"]

        resp = client.post(f"/api/admin/orders/{pending_id}/approve", json={"trip_id": trip.id}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == existing_id

        quantities = {i["product_id"]: i["quantity"] for i in resp.json["items"]}
        assert quantities == {p.id: 5, m.id: 1, g.id: 4}

        # The pending order and its items are gone
        assert client.get(f"/api/orders/{pending_id}", headers=admin_headers).status_code == 404
        assert db_session.query(OrderItem).filter_by(order_id=pending_id).count() == 0
        assert db_session.query(Order).filter_by(client_id=shop.id, trip_id=trip.id).count() == 1

    def test_approve_requires_trip_id(self, client, admin_headers, shop_headers, catalog):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])["id"]
        resp = client.post(f"/api/admin/orders/{order_id}/approve", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_approve_unknown_trip_keeps_order_pending(self, client, admin_headers, shop_headers, catalog):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])["id"]
        resp = client.post(f"/api/admin/orders/{order_id}/approve", json={"trip_id": 999999}, headers=admin_headers)
        assert resp.status_code == 404
        assert len(client.get("/api/admin/pending-orders", headers=admin_headers).json) == 1

    def test_approve_missing_order(self, client, admin_headers, trip):
        resp = client.post("/api/admin/orders/999999/approve", json={"trip_id": trip.id}, headers=admin_headers)
        assert resp.status_code == 404

    def test_approve_twice_conflicts(self, client, admin_headers, shop_headers, catalog, trip):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])["id"]
        first = client.post(f"/api/admin/orders/{order_id}/approve", json={"trip_id": trip.id}, headers=admin_headers)
        assert first.status_code == 200
        second = client.post(f"/api/admin/orders/{order_id}/approve", json={"trip_id": trip.id}, headers=admin_headers)
        assert second.status_code == 409

    def test_lost_race_raises_conflict(self, db_session, shop, catalog, trip):
        """An order already claimed by another approval is not approved again."""
        order = order_service.create_client_order(shop.id, [{"product_id": catalog[0].id, "quantity": 1}])
        db_session.query(Order).filter_by(id=order.id).update(
            {"status": "assigned", "trip_id": trip.id}, synchronize_session=False
        )
        db_session.commit()
        db_session.expire_all()

        with pytest.raises(ConflictError):
            order_service.approve_order(order.id, trip.id)

    def test_reject_deletes_order(self, client, db_session, admin_headers, shop_headers, catalog):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])["id"]
        assert client.post(f"/api/admin/orders/{order_id}/reject", headers=admin_headers).status_code == 204
        assert db_session.query(OrderItem).filter_by(order_id=order_id).count() == 0
        assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 404

    def test_reject_twice_is_404(self, client, admin_headers, shop_headers, catalog):
        order_id = _submit(client, shop_headers, [{"product_id": catalog[0].id, "quantity": 1}])["id"]
        client.post(f"/api/admin/orders/{order_id}/reject", headers=admin_headers)
        assert client.post(f"/api/admin/orders/{order_id}/reject", headers=admin_headers).status_code == 404

    def test_reject_assigned_order_conflicts(self, client, admin_headers, shop, catalog, trip):
        order_id = _create(client, admin_headers, shop.id, trip.id, [{"product_id": catalog[0].id, "quantity": 1}]).json["id"]
        assert client.post(f"/api/admin/orders/{order_id}/reject", headers=admin_headers).status_code == 409
        assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 200
