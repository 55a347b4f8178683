# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Module-based access checks and security event logging.

Permissions are read from the users table on every check, never from the
session snapshot, so edits made by an administrator apply to the very next
request.
"""

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import ALL_MODULES, ROLE_GLOBAL_ADMIN
from tripdesk.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks the required module."""
    pass


def log_security_event(
    event_type: str,
    success: bool,
    user_id: int | None = None,
    client_id: int | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append to the security audit trail.

    event_type examples: LOGIN_FAILED, LOGIN_SUCCESS, CLIENT_LOGIN_FAILED,
    CLIENT_LOGIN_SUCCESS, PERMISSION_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        client_id=client_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def get_user_modules(user_id: int) -> set[str]:
    """
    Fresh module set for a user. global_admin gets every module.
    Unknown/inactive users get nothing.
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return set()
    if user.role == ROLE_GLOBAL_ADMIN:
        return set(ALL_MODULES)
    return {key for key in (user.permissions or []) if key in ALL_MODULES}


def is_global_admin(user_id: int) -> bool:
    user = db.session.get(User, user_id)
    return bool(user and user.is_active and user.role == ROLE_GLOBAL_ADMIN)


def has_module(user_id: int, module_key: str) -> bool:
    return module_key in get_user_modules(user_id)


def require_module(
    user_id: int,
    module_key: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Raise PermissionDeniedError if the user lacks module_key.
    Denials are logged; grants are not.
    """
    if has_module(user_id, module_key):
        return

    log_security_event(
        event_type="PERMISSION_DENIED",
        success=False,
        user_id=user_id,
        resource=resource,
        action=module_key,
        reason=f"User lacks module {module_key}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Missing module: {module_key}")
