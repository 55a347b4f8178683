# Overview: Flask API routes for staff order management; parses input and returns JSON responses.

"""
Orders are returned priced at read time (unit_price / line_total per item,
total per order) from the client's current price table.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff, require_module
from ..models import Order
from ..models.orders import ORDER_STATUSES
from ..services import order_service, pricing_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_order_items,
    ValidationError,
    NotFoundError,
)


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"client_id", "trip_id", "observation"},
    required_on_create={"client_id", "trip_id", "items"},
    extra_fields={"items"},
)

ORDER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"client_id", "trip_id"},
    required_on_create={"client_id", "items"},
    extra_fields={"items"},
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"paid", "observation", "payment_method"},
    required_on_create={"paid"},
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@orders_bp.get("")
@require_staff
@require_module("orders")
def list_orders_route():
    """
    Query params:
    - trip_id: only orders of this trip
    - client_id: only orders of this client
    - status: pending | assigned
    """
    status = request.args.get("status")
    if status is not None and status not in ORDER_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(sorted(ORDER_STATUSES))}"}), 400

    try:
        orders = order_service.list_orders(
            trip_id=_int_arg("trip_id"),
            client_id=_int_arg("client_id"),
            status=status,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(pricing_service.price_orders(orders)), 200


@orders_bp.post("")
@require_staff
@require_module("orders")
def create_order_route():
    """
    Request body:
    {
        "client_id": 1,                               // required
        "trip_id": 2,                                 // required
        "items": [{"product_id": 3, "quantity": 10}], // required, non-empty
        "observation": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=False)
        items = enforce_rules_order_items(patch.pop("items"))
        order = order_service.create_order(
            client_id=patch["client_id"],
            trip_id=patch.get("trip_id"),
            items=items,
            observation=patch.get("observation"),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(pricing_service.price_order(order)), 201


@orders_bp.get("/<int:order_id>")
@require_staff
@require_module("orders")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(pricing_service.price_order(order)), 200


@orders_bp.put("/<int:order_id>")
@require_staff
@require_module("orders")
def update_order_route(order_id: int):
    """
    Replace client, trip and items. Omitting trip_id keeps the current trip;
    an explicit null moves the order back to pending.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_UPDATE_POLICY, partial=False)
        items = enforce_rules_order_items(patch.pop("items"))
        if "trip_id" in patch:
            trip_id = patch["trip_id"]
        else:
            trip_id = order_service.get_order(order_id).trip_id
        order = order_service.update_order(order_id, patch["client_id"], trip_id, items)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(pricing_service.price_order(order)), 200


@orders_bp.delete("/<int:order_id>")
@require_staff
@require_module("orders")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


@orders_bp.put("/<int:order_id>/payment")
@require_staff
@require_module("finance")
def set_payment_route(order_id: int):
    """Body: {"paid": bool, "observation"?: str|null, "payment_method"?: str|null}"""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Order, payload=payload, policy=PAYMENT_POLICY, partial=False)
        order = order_service.set_payment(
            order_id,
            paid=patch["paid"],
            observation=patch.get("observation") or None,
            payment_method=patch.get("payment_method") or None,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(pricing_service.price_order(order)), 200
