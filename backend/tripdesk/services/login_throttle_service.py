"""
Login Throttling Service

Limits brute-force attempts against staff logins (username/email) and
client portal logins (normalized CNPJ). Failures are counted from the
security_events table.
"""

from datetime import timedelta
from ..extensions import db
from ..models import SecurityEvent
from tripdesk.time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

STAFF_FAILURE_EVENT = "LOGIN_FAILED"
CLIENT_FAILURE_EVENT = "CLIENT_LOGIN_FAILED"


def get_recent_failed_attempts(identifier: str, event_type: str = STAFF_FAILURE_EVENT) -> int:
    """Failed attempts for identifier within LOCKOUT_WINDOW."""
    cutoff = utcnow() - LOCKOUT_WINDOW

    # The identifier is kept in the 'action' column of the event
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == event_type,
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at >= cutoff,
    ).count()


def is_locked(identifier: str, event_type: str = STAFF_FAILURE_EVENT) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if get_recent_failed_attempts(identifier, event_type) < MAX_FAILED_ATTEMPTS:
        return False, None

    most_recent = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == event_type,
        SecurityEvent.action == identifier,
    ).order_by(SecurityEvent.occurred_at.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + LOCKOUT_DURATION
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())

    return False, None


def record_failed_attempt(
    identifier: str,
    event_type: str = STAFF_FAILURE_EVENT,
    user_id: int | None = None,
    client_id: int | None = None,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """Record a failure and return the recent failure count."""
    event = SecurityEvent(
        user_id=user_id,
        client_id=client_id,
        event_type=event_type,
        resource=resource,
        action=identifier,
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()

    return get_recent_failed_attempts(identifier, event_type)


def record_successful_login(
    identifier: str,
    event_type: str = "LOGIN_SUCCESS",
    user_id: int | None = None,
    client_id: int | None = None,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    event = SecurityEvent(
        user_id=user_id,
        client_id=client_id,
        event_type=event_type,
        resource=resource,
        action=identifier,
        success=True,
        reason=None,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
