# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session token management for staff users and portal clients.

Tokens are 32 random bytes sent to the caller once; only the SHA-256 hash is
stored. Sessions expire after SESSION_LIFETIME_HOURS (config) and are revoked
on logout.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Client
from tripdesk.time_utils import utcnow


PRINCIPAL_STAFF = "staff"
PRINCIPAL_CLIENT = "client"

DEFAULT_SESSION_LIFETIME_HOURS = 168


@dataclass
class SessionContext:
    """Resolved identity for one request. Exactly one of user/client is set."""
    session: SessionToken
    user: User | None = None
    client: Client | None = None


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _session_lifetime() -> timedelta:
    hours = current_app.config.get("SESSION_LIFETIME_HOURS", DEFAULT_SESSION_LIFETIME_HOURS)
    return timedelta(hours=int(hours))


def _new_session(
    principal_type: str,
    user_agent: str | None,
    ip_address: str | None,
    **fields,
) -> tuple[SessionToken, str]:
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        principal_type=principal_type,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _session_lifetime(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
        **fields,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def create_staff_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a staff session. Role and permissions are snapshotted for
    display only; see permission_service for the authoritative check.

    Returns (session_record, plaintext_token).
    """
    return _new_session(
        PRINCIPAL_STAFF,
        user_agent,
        ip_address,
        user_id=user.id,
        role_snapshot=user.role,
        permissions_snapshot=list(user.permissions or []),
    )


def create_client_session(
    client: Client,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    return _new_session(PRINCIPAL_CLIENT, user_agent, ip_address, client_id=client.id)


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str, principal_type: str) -> SessionContext | None:
    """
    Resolve a bearer token for the given principal type.

    Returns None if the token is unknown, revoked, expired, belongs to the
    other principal type, or its user/client has been deactivated.
    Updates last_used_at on success.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session or session.principal_type != principal_type:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    if principal_type == PRINCIPAL_STAFF:
        user = session.user
        if not user or not user.is_active:
            _revoke(session, "User account deactivated")
            return None
        context = SessionContext(session=session, user=user)
    else:
        client = session.client
        if not client or not client.is_active:
            _revoke(session, "Client deactivated")
            return None
        context = SessionContext(session=session, client=client)

    session.last_used_at = now
    db.session.commit()
    return context


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str) -> int:
    now = utcnow()
    count = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).update({
        "is_revoked": True,
        "revoked_at": now,
        "revoked_reason": reason,
    }, synchronize_session=False)
    db.session.commit()
    return count


def cleanup_expired_sessions() -> int:
    """Delete sessions that are expired or revoked. Returns rows removed."""
    now = utcnow()
    count = db.session.query(SessionToken).filter(
        db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True))
    ).delete(synchronize_session=False)
    db.session.commit()
    return count
