# Overview: Flask API routes for the product catalog.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, require_module
from ..models import Product
from ..services import product_service
from ..services.product_service import ProductInUseError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "color", "size", "is_active"},
    required_on_create={"name", "color", "size"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_staff
@require_module("products")
def list_products_route():
    active_only = request.args.get("active_only", "false").lower() == "true"
    return jsonify([p.to_dict() for p in product_service.list_products(active_only=active_only)]), 200


@products_bp.post("")
@require_staff
@require_module("products")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(product_service.create_product(patch).to_dict()), 201


@products_bp.get("/<int:product_id>")
@require_staff
@require_module("products")
def get_product_route(product_id: int):
    try:
        return jsonify(product_service.get_product(product_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.put("/<int:product_id>")
@require_staff
@require_module("products")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = product_service.update_product(product_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_staff
@require_module("products")
def delete_product_route(product_id: int):
    """Products referenced by any order item cannot be deleted (400)."""
    try:
        product_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ProductInUseError as e:
        return jsonify({"error": str(e)}), 400
    return "", 204
