# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError
from .services.session_service import PRINCIPAL_STAFF, PRINCIPAL_CLIENT


def get_bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_staff(f):
    """
    Require a staff session.

    Sets:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token, PRINCIPAL_STAFF)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_module(module_key: str):
    """
    Require a staff module. Must be stacked under @require_staff.

    The module list is read from the database on every call; global_admin
    passes every check.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, 'current_user'):
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_module(
                    user_id=g.current_user.id,
                    module_key=module_key,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_module": module_key,
                    "message": str(e),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_global_admin(f):
    """Require the authenticated staff user to be a global_admin (fresh lookup)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'current_user'):
            return jsonify({"error": "Authentication required"}), 401
        if not permission_service.is_global_admin(g.current_user.id):
            permission_service.log_security_event(
                event_type="PERMISSION_DENIED",
                success=False,
                user_id=g.current_user.id,
                resource=request.path,
                action="global_admin",
                reason="Global admin access required",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": "Global admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_client(f):
    """
    Require a client portal session.

    Sets g.current_client to the authenticated Client.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token, PRINCIPAL_CLIENT)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_client = context.client
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function
