# Overview: Flask API routes for staff-side client messaging.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, require_module
from ..services import message_service
from ..validation import ValidationError, NotFoundError


messages_bp = Blueprint("messages", __name__, url_prefix="/api/admin/messages")


@messages_bp.get("")
@require_staff
@require_module("messages")
def list_messages_route():
    client_id = request.args.get("client_id", type=int)
    return jsonify([m.to_dict() for m in message_service.list_messages(client_id=client_id)]), 200


@messages_bp.get("/unread")
@require_staff
@require_module("messages")
def list_unread_messages_route():
    return jsonify([m.to_dict() for m in message_service.list_unread_for_staff()]), 200


@messages_bp.post("")
@require_staff
@require_module("messages")
def send_message_route():
    """Body: {"client_id": int, "content": str}"""
    data = request.get_json(silent=True) or {}
    client_id = data.get("client_id")
    if isinstance(client_id, bool) or not isinstance(client_id, int):
        return jsonify({"error": "client_id is required"}), 400
    try:
        msg = message_service.send_to_client(client_id, data.get("content"))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(msg.to_dict()), 201


@messages_bp.post("/<int:message_id>/read")
@require_staff
@require_module("messages")
def mark_message_read_route(message_id: int):
    try:
        message_service.mark_read(message_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True}), 200
