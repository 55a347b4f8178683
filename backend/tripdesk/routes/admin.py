# Overview: Flask API routes for staff user administration (global admins only).

from flask import Blueprint, request, jsonify, g

from ..decorators import require_staff, require_global_admin
from ..permissions import MODULE_DEFINITIONS, ROLE_ADMIN, get_module_definition
from ..services import auth_service
from ..validation import ValidationError, ConflictError, NotFoundError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/modules")
@require_staff
@require_global_admin
def list_modules_route():
    return jsonify([get_module_definition(m[0]) for m in MODULE_DEFINITIONS]), 200


@admin_bp.get("/users")
@require_staff
@require_global_admin
def list_users_route():
    return jsonify([u.to_dict() for u in auth_service.list_users()]), 200


@admin_bp.post("/users")
@require_staff
@require_global_admin
def create_user_route():
    """
    Create a staff user.

    Request body:
    {
        "username": "maria",          // required
        "email": "maria@example.com", // required
        "password": "secret1",        // required, min 6 chars
        "first_name": "Maria",        // required
        "last_name": "Silva",
        "role": "admin",              // admin | global_admin
        "permissions": ["orders", "clients"]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name") or "",
            role=data.get("role") or ROLE_ADMIN,
            permissions=data.get("permissions"),
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(user.to_dict()), 201


@admin_bp.put("/users/<int:user_id>/permissions")
@require_staff
@require_global_admin
def update_user_permissions_route(user_id: int):
    """Body: {"role"?: str, "permissions"?: [module keys]}"""
    data = request.get_json(silent=True) or {}
    role = data.get("role")
    if role is not None and not isinstance(role, str):
        return jsonify({"error": "role must be a string"}), 400

    try:
        user = auth_service.update_user_access(
            user_id,
            acting_user_id=g.current_user.id,
            role=role,
            permissions=data.get("permissions"),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(user.to_dict()), 200


@admin_bp.delete("/users/<int:user_id>")
@require_staff
@require_global_admin
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return "", 204
