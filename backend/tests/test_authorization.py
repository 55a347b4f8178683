"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Staff without a module are denied (403) and the denial is logged
- Module changes apply on the very next request
- Client portal tokens cannot reach staff endpoints and vice versa
- Login throttling after repeated failures
"""

import pytest

from tripdesk.models import SecurityEvent
from tripdesk.services import login_throttle_service
from conftest import auth_headers, get_auth_token, get_client_token, PASSWORD


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/user"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/admin/modules"),
            ("GET", "/api/clients"),
            ("GET", "/api/products"),
            ("GET", "/api/trips"),
            ("GET", "/api/orders"),
            ("GET", "/api/admin/pending-orders"),
            ("POST", "/api/admin/orders/1/approve"),
            ("GET", "/api/admin/messages"),
            ("GET", "/api/finance/entries"),
            ("GET", "/api/finance/summary"),
            ("GET", "/api/admin/report/sales"),
            ("GET", "/api/admin/dashboard"),
            ("GET", "/api/admin/showcase"),
            ("GET", "/api/admin/contact-submissions"),
            ("POST", "/api/uploads/request-url"),
            ("GET", "/api/client/me"),
            ("GET", "/api/client/orders"),
            ("POST", "/api/client/messages"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/orders", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# MODULE CHECKS (403)
# =============================================================================


class TestModuleChecks:
    """Staff users only reach the modules they were granted."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/clients",
            "/api/products",
            "/api/trips",
            "/api/admin/pending-orders",
            "/api/admin/messages",
            "/api/finance/entries",
            "/api/admin/report/sales",
            "/api/admin/dashboard",
        ],
    )
    def test_clerk_denied_other_modules(self, client, clerk_headers, path):
        resp = client.get(path, headers=clerk_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"

    def test_clerk_allowed_orders(self, client, clerk_headers):
        resp = client.get("/api/orders", headers=clerk_headers)
        assert resp.status_code == 200

    def test_clerk_cannot_manage_users(self, client, clerk_headers):
        resp = client.get("/api/admin/users", headers=clerk_headers)
        assert resp.status_code == 403

    def test_denial_is_logged(self, client, db_session, orders_clerk, clerk_headers):
        client.get("/api/finance/entries", headers=clerk_headers)
        event = db_session.query(SecurityEvent).filter_by(
            user_id=orders_clerk.id, event_type="PERMISSION_DENIED"
        ).first()
        assert event is not None
        assert event.action == "finance"
        assert event.success is False

    def test_payment_requires_finance_module(self, client, clerk_headers):
        resp = client.put("/api/orders/1/payment", json={"paid": True}, headers=clerk_headers)
        assert resp.status_code == 403

    def test_clients_only_user(self, client, make_user):
        make_user("ana", permissions=["clients"])
        headers = auth_headers(get_auth_token(client, "ana"))
        assert client.get("/api/orders", headers=headers).status_code == 403
        assert client.get("/api/clients", headers=headers).status_code == 200

    def test_global_admin_reaches_everything(self, client, admin_headers):
        for path in ("/api/clients", "/api/finance/entries", "/api/admin/dashboard", "/api/admin/users"):
            assert client.get(path, headers=admin_headers).status_code == 200, path

    def test_granted_module_applies_to_existing_session(self, client, admin_headers, orders_clerk, clerk_headers):
        assert client.get("/api/trips", headers=clerk_headers).status_code == 403

        resp = client.put(
            f"/api/admin/users/{orders_clerk.id}/permissions",
            json={"permissions": ["orders", "trips"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200

        assert client.get("/api/trips", headers=clerk_headers).status_code == 200

    def test_revoked_module_applies_to_existing_session(self, client, admin_headers, orders_clerk, clerk_headers):
        client.put(
            f"/api/admin/users/{orders_clerk.id}/permissions",
            json={"permissions": []},
            headers=admin_headers,
        )
        assert client.get("/api/orders", headers=clerk_headers).status_code == 403


# =============================================================================
# PRINCIPAL SEPARATION
# =============================================================================


class TestPrincipalSeparation:
    def test_client_token_rejected_on_staff_routes(self, client, shop_headers):
        assert client.get("/api/orders", headers=shop_headers).status_code == 401
        assert client.get("/api/auth/user", headers=shop_headers).status_code == 401

    def test_staff_token_rejected_on_portal_routes(self, client, admin_headers):
        assert client.get("/api/client/me", headers=admin_headers).status_code == 401


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestStaffLogin:
    def test_login_returns_token_and_modules(self, client, orders_clerk):
        resp = client.post("/api/login", json={"username": "clerk", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["modules"] == ["orders"]
        assert resp.json["user"]["username"] == "clerk"
        assert "password_hash" not in resp.json["user"]

    def test_login_by_email(self, client, orders_clerk):
        resp = client.post("/api/login", json={"email": orders_clerk.email, "password": PASSWORD})
        assert resp.status_code == 200

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/login", json={"username": "x"}).status_code == 400

    def test_wrong_password(self, client, orders_clerk):
        resp = client.post("/api/login", json={"username": "clerk", "password": "nope-nope"})
        assert resp.status_code == 401

    def test_inactive_user_cannot_login(self, client, make_user):
        make_user("ghost", is_active=False)
        resp = client.post("/api/login", json={"username": "ghost", "password": PASSWORD})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, clerk_headers):
        assert client.get("/api/auth/user", headers=clerk_headers).status_code == 200
        assert client.post("/api/logout", headers=clerk_headers).json == {"ok": True}
        assert client.get("/api/auth/user", headers=clerk_headers).status_code == 401

    def test_logout_without_token_succeeds(self, client, db_session):
        assert client.get("/api/logout").status_code == 200

    def test_deactivated_user_loses_session(self, client, db_session, orders_clerk, clerk_headers):
        orders_clerk.is_active = False
        db_session.commit()
        assert client.get("/api/orders", headers=clerk_headers).status_code == 401

    def test_lockout_after_repeated_failures(self, client, orders_clerk):
        for _ in range(login_throttle_service.MAX_FAILED_ATTEMPTS - 1):
            resp = client.post("/api/login", json={"username": "clerk", "password": "wrong-pass"})
            assert resp.status_code == 401

        resp = client.post("/api/login", json={"username": "clerk", "password": "wrong-pass"})
        assert resp.status_code == 429

        # Correct password is refused while locked
        resp = client.post("/api/login", json={"username": "clerk", "password": PASSWORD})
        assert resp.status_code == 429
        assert resp.json["locked"] is True

    def test_lockout_is_per_identifier(self, client, orders_clerk, make_user):
        make_user("other")
        for _ in range(login_throttle_service.MAX_FAILED_ATTEMPTS):
            client.post("/api/login", json={"username": "clerk", "password": "wrong-pass"})
        assert get_auth_token(client, "other") is not None


class TestClientLogin:
    def test_login_with_formatted_or_plain_cnpj(self, client, shop):
        assert get_client_token(client, "12.345.678/0001-90") is not None
        assert get_client_token(client, "12345678000190") is not None

    def test_unknown_cnpj(self, client, db_session):
        resp = client.post("/api/client/login", json={"cnpj": "99.999.999/0001-99"})
        assert resp.status_code == 404

    def test_missing_cnpj(self, client, db_session):
        assert client.post("/api/client/login", json={}).status_code == 400
        assert client.post("/api/client/login", json={"cnpj": "--"}).status_code == 400

    def test_inactive_client(self, client, db_session, shop):
        shop.is_active = False
        db_session.commit()
        resp = client.post("/api/client/login", json={"cnpj": shop.cnpj})
        assert resp.status_code == 403

    def test_client_lockout(self, client, db_session):
        for _ in range(login_throttle_service.MAX_FAILED_ATTEMPTS):
            client.post("/api/client/login", json={"cnpj": "11.111.111/0001-11"})
        resp = client.post("/api/client/login", json={"cnpj": "11111111000111"})
        assert resp.status_code == 429

    def test_deactivated_client_loses_session(self, client, db_session, shop, shop_headers):
        shop.is_active = False
        db_session.commit()
        assert client.get("/api/client/me", headers=shop_headers).status_code == 401
