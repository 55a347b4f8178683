from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Tracks failed logins (staff and client portal) and permission denials.
    Login throttling counts LOGIN_FAILED / CLIENT_LOGIN_FAILED rows here.

    IMMUTABLE: append-only; only the retention cleanup command deletes rows.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_type_action", "event_type", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # No FK: events outlive deleted users and clients
    user_id = db.Column(db.Integer, nullable=True, index=True)
    client_id = db.Column(db.Integer, nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # LOGIN_FAILED, PERMISSION_DENIED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/orders"
    action = db.Column(db.String(255), nullable=True)    # module key, or login identifier

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "client_id": self.client_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
