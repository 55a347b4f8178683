# Overview: Image upload endpoints and static serving of uploaded files.

import os

from flask import Blueprint, request, jsonify, send_from_directory

from ..decorators import require_staff
from ..services import upload_service
from ..validation import ValidationError


uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.post("/api/uploads/direct")
@require_staff
def direct_upload_route():
    """Multipart upload, field name "file"."""
    try:
        stored = upload_service.save_file_storage(request.files.get("file"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"object_path": upload_service.object_path(stored)}), 201


@uploads_bp.post("/api/uploads/request-url")
@require_staff
def request_upload_url_route():
    """Body: {"name": "photo.jpg"} -> {"upload_url", "object_path"}"""
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        return jsonify({"error": "name must be a string"}), 400
    return jsonify(upload_service.request_upload(name)), 200


@uploads_bp.put("/api/uploads/<filename>")
@require_staff
def put_upload_route(filename: str):
    """Raw request body is written to the reserved name."""
    try:
        stored = upload_service.save_raw(filename, request.stream)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"object_path": upload_service.object_path(stored)}), 200


@uploads_bp.get("/uploads/<filename>")
def serve_upload_route(filename: str):
    return send_from_directory(upload_service.get_upload_folder(), filename)


@uploads_bp.get("/objects/<filename>")
def serve_object_route(filename: str):
    folder = upload_service.get_upload_folder()
    name = os.path.basename(filename)
    if not os.path.isfile(os.path.join(folder, name)):
        return jsonify({"error": "File not found"}), 404
    return send_from_directory(folder, name)
