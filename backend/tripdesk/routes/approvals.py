# Overview: Flask API routes for approving or rejecting portal orders.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff, require_module
from ..models import Order
from ..services import order_service, pricing_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)


APPROVE_POLICY = ModelValidationPolicy(
    writable_fields={"trip_id"},
)

approvals_bp = Blueprint("approvals", __name__, url_prefix="/api/admin")


@approvals_bp.get("/pending-orders")
@require_staff
@require_module("order_requests")
def list_pending_orders_route():
    return jsonify(pricing_service.price_orders(order_service.list_pending_orders())), 200


@approvals_bp.post("/orders/<int:order_id>/approve")
@require_staff
@require_module("order_requests")
def approve_order_route(order_id: int):
    """
    Body: {"trip_id": int}

    Returns the order holding the items afterwards: the approved order
    itself, or the client's existing order on that trip it was merged into.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Order, payload=payload, policy=APPROVE_POLICY, partial=False)
        order = order_service.approve_order(order_id, patch.get("trip_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to approve order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(pricing_service.price_order(order)), 200


@approvals_bp.post("/orders/<int:order_id>/reject")
@require_staff
@require_module("order_requests")
def reject_order_route(order_id: int):
    try:
        order_service.reject_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return "", 204
