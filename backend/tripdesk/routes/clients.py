# Overview: Flask API routes for clients and per-client price tables.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, require_module
from ..models import Client
from ..services import client_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "legal_name", "trade_name", "cnpj", "state_registration",
        "zip_code", "street", "number", "district", "city", "state",
        "phones", "email", "contact_person", "is_active",
    },
    required_on_create={
        "legal_name", "trade_name", "cnpj", "street", "number",
        "city", "state", "phones", "email", "contact_person",
    },
)

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_staff
@require_module("clients")
def list_clients_route():
    """
    Query params:
    - search: matches trade/legal name, or CNPJ digits
    - include_inactive: default true
    """
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    clients = client_service.list_clients(
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify([c.to_dict() for c in clients]), 200


@clients_bp.post("")
@require_staff
@require_module("clients")
def create_client_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
        client = client_service.create_client(patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(client.to_dict()), 201


@clients_bp.get("/<int:client_id>")
@require_staff
@require_module("clients")
def get_client_route(client_id: int):
    try:
        client = client_service.get_client(client_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(client.to_dict()), 200


@clients_bp.put("/<int:client_id>")
@require_staff
@require_module("clients")
def update_client_route(client_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
        client = client_service.update_client(client_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(client.to_dict()), 200


@clients_bp.delete("/<int:client_id>")
@require_staff
@require_module("clients")
def delete_client_route(client_id: int):
    """Deletes the client together with its orders, prices and messages."""
    try:
        client_service.delete_client(client_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


@clients_bp.get("/<int:client_id>/prices")
@require_staff
@require_module("clients")
def list_client_prices_route(client_id: int):
    try:
        prices = client_service.list_client_prices(client_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify([p.to_dict() for p in prices]), 200


@clients_bp.post("/<int:client_id>/prices")
@require_staff
@require_module("clients")
def upsert_client_price_route(client_id: int):
    """Body: {"size": "M", "price": "12.50"}. Overwrites an existing price for the size."""
    data = request.get_json(silent=True) or {}
    try:
        price = client_service.upsert_client_price(client_id, data.get("size"), data.get("price"))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(price.to_dict()), 200
