# Overview: Flask API routes for the client self-service portal.

"""
Client portal.

Clients log in with their CNPJ only (digits are matched, formatting is
ignored). Orders placed here start pending and wait for staff approval.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_client, get_bearer_token
from ..models import Order
from ..services import (
    client_service,
    login_throttle_service,
    message_service,
    order_service,
    pricing_service,
    product_service,
    session_service,
)
from ..services.login_throttle_service import CLIENT_FAILURE_EVENT
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_order_items,
    normalize_cnpj,
    ValidationError,
    NotFoundError,
)


CLIENT_ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"observation"},
    required_on_create={"items"},
    extra_fields={"items"},
)


client_portal_bp = Blueprint("client_portal", __name__, url_prefix="/api/client")


@client_portal_bp.post("/login")
def client_login_route():
    data = request.get_json(silent=True) or {}
    cnpj = data.get("cnpj")
    if not isinstance(cnpj, str) or not normalize_cnpj(cnpj):
        return jsonify({"error": "cnpj is required"}), 400

    identifier = normalize_cnpj(cnpj)
    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    locked, seconds_remaining = login_throttle_service.is_locked(identifier, CLIENT_FAILURE_EVENT)
    if locked:
        return jsonify({
            "error": "Too many failed login attempts",
            "locked": True,
            "retry_after_seconds": seconds_remaining,
        }), 429

    client = client_service.get_client_by_cnpj(identifier)
    if not client:
        login_throttle_service.record_failed_attempt(
            identifier=identifier,
            event_type=CLIENT_FAILURE_EVENT,
            resource=request.path,
            ip_address=ip_address,
            user_agent=user_agent,
            reason="Unknown CNPJ",
        )
        return jsonify({"error": "Client not found. Check the CNPJ and try again."}), 404

    if not client.is_active:
        login_throttle_service.record_failed_attempt(
            identifier=identifier,
            event_type=CLIENT_FAILURE_EVENT,
            client_id=client.id,
            resource=request.path,
            ip_address=ip_address,
            user_agent=user_agent,
            reason="Client inactive",
        )
        return jsonify({"error": "Client is inactive. Please contact us."}), 403

    login_throttle_service.record_successful_login(
        identifier=identifier,
        event_type="CLIENT_LOGIN_SUCCESS",
        client_id=client.id,
        resource=request.path,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session, token = session_service.create_client_session(
        client,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    current_app.logger.info("Client %s logged in to the portal", client.id)

    return jsonify({
        "client": client.to_summary(),
        "token": token,
        "session": session.to_dict(),
    }), 200


@client_portal_bp.get("/me")
@require_client
def client_me_route():
    return jsonify(g.current_client.to_dict()), 200


@client_portal_bp.post("/logout")
def client_logout_route():
    token = get_bearer_token()
    if token:
        session_service.revoke_session(token, reason="Client logout")
    return jsonify({"ok": True}), 200


@client_portal_bp.get("/products")
@require_client
def client_products_route():
    products = product_service.list_products(active_only=True)
    return jsonify([p.to_dict() for p in products]), 200


@client_portal_bp.get("/prices")
@require_client
def client_prices_route():
    prices = client_service.list_client_prices(g.current_client.id)
    return jsonify([p.to_dict() for p in prices]), 200


@client_portal_bp.get("/orders")
@require_client
def client_orders_route():
    orders = order_service.list_orders_for_client(g.current_client.id)
    return jsonify(pricing_service.price_orders(orders)), 200


@client_portal_bp.post("/orders")
@require_client
def client_create_order_route():
    """
    Submit an order for approval.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 3}],  // required, non-empty
        "observation": "..."                          // optional
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Order, payload=payload, policy=CLIENT_ORDER_POLICY, partial=False)
        items = enforce_rules_order_items(patch.pop("items"))
        order = order_service.create_client_order(
            g.current_client.id,
            items,
            observation=patch.get("observation"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(pricing_service.price_order(order)), 201


@client_portal_bp.get("/messages")
@require_client
def client_messages_route():
    messages = message_service.list_messages(client_id=g.current_client.id)
    return jsonify([m.to_dict() for m in messages]), 200


@client_portal_bp.post("/messages")
@require_client
def client_send_message_route():
    data = request.get_json(silent=True) or {}
    try:
        msg = message_service.send_from_client(g.current_client.id, data.get("content"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(msg.to_dict()), 201
