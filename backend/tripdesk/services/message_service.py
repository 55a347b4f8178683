# Overview: Service-layer operations for client messages.

from __future__ import annotations

from ..extensions import db
from ..models import Message, Client
from ..models.messages import DIRECTION_CLIENT_TO_ADMIN, DIRECTION_ADMIN_TO_CLIENT
from ..validation import ValidationError, NotFoundError


MAX_MESSAGE_LENGTH = 5000


def _clean_content(content) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required")
    content = content.strip()
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"content exceeds max length {MAX_MESSAGE_LENGTH}")
    return content


def list_messages(client_id: int | None = None) -> list[Message]:
    """Conversation order (oldest first)."""
    q = db.session.query(Message)
    if client_id is not None:
        q = q.filter(Message.client_id == client_id)
    return q.order_by(Message.created_at.asc(), Message.id.asc()).all()


def list_unread_for_staff() -> list[Message]:
    return (
        db.session.query(Message)
        .filter(
            Message.direction == DIRECTION_CLIENT_TO_ADMIN,
            Message.is_read.is_(False),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )


def send_from_client(client_id: int, content) -> Message:
    msg = Message(
        client_id=client_id,
        content=_clean_content(content),
        direction=DIRECTION_CLIENT_TO_ADMIN,
        is_read=False,
    )
    db.session.add(msg)
    db.session.commit()
    return msg


def send_to_client(client_id: int, content) -> Message:
    if not db.session.get(Client, client_id):
        raise NotFoundError("Client not found")
    msg = Message(
        client_id=client_id,
        content=_clean_content(content),
        direction=DIRECTION_ADMIN_TO_CLIENT,
        is_read=False,
    )
    db.session.add(msg)
    db.session.commit()
    return msg


def mark_read(message_id: int) -> Message:
    msg = db.session.get(Message, message_id)
    if not msg:
        raise NotFoundError("Message not found")
    msg.is_read = True
    db.session.commit()
    return msg
