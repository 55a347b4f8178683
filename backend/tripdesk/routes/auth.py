# Overview: Flask API routes for staff auth; parses input and returns JSON responses.

# backend/tripdesk/routes/auth.py
"""
Staff authentication.

- POST /api/login       username (or email) + password -> bearer token
- GET  /api/auth/user   current user, with modules resolved fresh
- GET|POST /api/logout  revoke the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services import permission_service
from ..decorators import require_staff, get_bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a staff user and create a session token.

    Too many failures for the same identifier within the lockout window
    return 429 until the window has passed.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email")
        password = data.get("password")

        if not isinstance(identifier, str) or not isinstance(password, str) or not identifier or not password:
            return jsonify({"error": "username and password required"}), 400

        identifier = identifier.strip()
        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        locked, seconds_remaining = login_throttle_service.is_locked(identifier)
        if locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        user = auth_service.authenticate(identifier, password)

        if not user:
            failed_count = login_throttle_service.record_failed_attempt(
                identifier=identifier,
                resource=request.path,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed_count
            if remaining <= 0:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                }), 429
            return jsonify({"error": "Invalid credentials"}), 401

        login_throttle_service.record_successful_login(
            identifier=identifier,
            user_id=user.id,
            resource=request.path,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        session, token = session_service.create_staff_session(
            user,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        current_app.logger.info("Staff user %s logged in", user.username)

        return jsonify({
            "user": user.to_dict(),
            "modules": sorted(permission_service.get_user_modules(user.id)),
            "token": token,
            "session": session.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/auth/user")
@require_staff
def current_user_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "modules": sorted(permission_service.get_user_modules(user.id)),
        "session": g.session_context.session.to_dict(),
    }), 200


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout_route():
    """Revoke the presented token. Always succeeds."""
    token = get_bearer_token()
    if token:
        session_service.revoke_session(token)
    return jsonify({"ok": True}), 200
