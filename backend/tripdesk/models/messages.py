from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_utc_z


DIRECTION_CLIENT_TO_ADMIN = "client_to_admin"
DIRECTION_ADMIN_TO_CLIENT = "admin_to_client"
MESSAGE_DIRECTIONS = {DIRECTION_CLIENT_TO_ADMIN, DIRECTION_ADMIN_TO_CLIENT}


class Message(db.Model):
    """
    Conversation line between a client and the back office.

    Content is immutable once written; only is_read changes.
    """
    __tablename__ = "messages"
    __table_args__ = (
        db.Index("ix_messages_direction_read", "direction", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    direction = db.Column(db.String(32), nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "content": self.content,
            "direction": self.direction,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
