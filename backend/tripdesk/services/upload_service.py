# Overview: Local disk storage for uploaded images.

"""
Files live in UPLOAD_FOLDER under generated names
("<epoch-ms>-<random><ext>") and are served back from /uploads/<name>.
Caller-supplied names are only used for their extension.
"""

from __future__ import annotations

import os
import secrets
import time

from flask import current_app
from werkzeug.utils import secure_filename

from ..validation import ValidationError


MAX_EXTENSION_LENGTH = 10


def get_upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    if not os.path.isabs(folder):
        folder = os.path.join(current_app.instance_path, folder)
    os.makedirs(folder, exist_ok=True)
    return folder


def _extension(original_name: str | None, default: str = ".bin") -> str:
    ext = os.path.splitext(secure_filename(original_name or ""))[1].lower()
    if not ext or len(ext) > MAX_EXTENSION_LENGTH:
        return default
    return ext


def generate_stored_name(original_name: str | None) -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{_extension(original_name)}"


def object_path(stored_name: str) -> str:
    return f"/uploads/{stored_name}"


def safe_stored_name(filename: str) -> str:
    """Reject anything that is not a plain file name."""
    cleaned = secure_filename(filename or "")
    if not cleaned or cleaned != filename:
        raise ValidationError("Invalid file name")
    return cleaned


def save_file_storage(file_storage) -> str:
    """Save a multipart upload; returns the stored name."""
    if file_storage is None or not file_storage.filename:
        raise ValidationError("No file uploaded")
    stored = generate_stored_name(file_storage.filename)
    file_storage.save(os.path.join(get_upload_folder(), stored))
    current_app.logger.info("Stored upload %s", stored)
    return stored


def save_raw(filename: str, stream) -> str:
    """Write a raw request body to UPLOAD_FOLDER/<filename>."""
    stored = safe_stored_name(filename)
    path = os.path.join(get_upload_folder(), stored)
    with open(path, "wb") as fh:
        while True:
            chunk = stream.read(64 * 1024)
            if not chunk:
                break
            fh.write(chunk)
    current_app.logger.info("Stored upload %s", stored)
    return stored


def request_upload(name: str | None) -> dict:
    """Two-step flow: reserve a name, the caller then PUTs the bytes to upload_url."""
    stored = generate_stored_name(name)
    return {
        "upload_url": f"/api/uploads/{stored}",
        "object_path": object_path(stored),
    }
