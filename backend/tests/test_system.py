"""
Health check, CORS headers and CLI commands.
"""

from tripdesk.models import User, Product, Trip, SessionToken
from tripdesk.permissions import ROLE_GLOBAL_ADMIN
from conftest import get_auth_token


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["status"] == "healthy"


def test_cors_allowed_origin(client, db_session):
    resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


def test_cors_unknown_origin(client, db_session):
    resp = client.get("/api/health", headers={"Origin": "https://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:
    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--password", "changeme1"])
        assert result.exit_code == 0, result.output
        assert "Created global admin" in result.output

        admin = db_session.query(User).filter_by(username="admin").one()
        assert admin.role == ROLE_GLOBAL_ADMIN

        again = runner.invoke(args=["system", "init"])
        assert again.exit_code == 0
        assert "already exists" in again.output
        assert db_session.query(User).count() == 1

    def test_seed_demo(self, app, db_session):
        runner = app.test_cli_runner()
        assert runner.invoke(args=["system", "seed-demo"]).exit_code == 0
        assert db_session.query(Product).count() == 6
        assert db_session.query(Trip).count() == 1
        assert "already present" in runner.invoke(args=["system", "seed-demo"]).output

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "joao", "--email", "joao@tripdesk.test", "--first-name", "Joao",
            "--password", "secret99", "--module", "orders", "--module", "trips",
        ])
        assert result.exit_code == 0, result.output
        assert db_session.query(User).filter_by(username="joao").one().permissions == ["orders", "trips"]

        listing = runner.invoke(args=["users", "list"])
        assert "joao" in listing.output

    def test_set_password_revokes_sessions(self, app, client, orders_clerk):
        token = get_auth_token(client, orders_clerk.username)
        assert token

        runner = app.test_cli_runner()
        result = runner.invoke(args=["users", "set-password", "clerk", "--password", "brandnew1"])
        assert result.exit_code == 0, result.output
        assert "1 session(s) revoked" in result.output

        assert get_auth_token(client, "clerk", "brandnew1") is not None

    def test_cleanup_sessions(self, app, client, db_session, orders_clerk, clerk_headers):
        client.post("/api/logout", headers=clerk_headers)
        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])
        assert result.exit_code == 0
        assert "Deleted 1" in result.output
        assert db_session.query(SessionToken).count() == 0
