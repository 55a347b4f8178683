# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order lifecycle.

    client portal ──create_client_order──> pending ──approve_order──> assigned
                                              │
                                              └──reject_order──> (deleted)
    staff ──create_order──> assigned

Every operation here commits once or rolls back; items are always replaced
together with their order, never patched individually.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Order, OrderItem, Product, Client, Trip
from ..models.orders import (
    ORDER_SOURCE_ADMIN,
    ORDER_SOURCE_CLIENT,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_ASSIGNED,
)
from ..validation import ValidationError, ConflictError, NotFoundError


def _order_query():
    return db.session.query(Order).options(
        joinedload(Order.client),
        joinedload(Order.trip),
        selectinload(Order.items).joinedload(OrderItem.product),
    )


def _status_for_trip(trip_id: int | None) -> str:
    return ORDER_STATUS_PENDING if trip_id is None else ORDER_STATUS_ASSIGNED


def _require_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")
    return client


def _require_trip(trip_id: int) -> Trip:
    trip = db.session.get(Trip, trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def _require_products(items: list[dict], active_only: bool = False) -> None:
    product_ids = {item["product_id"] for item in items}
    q = db.session.query(Product.id).filter(Product.id.in_(product_ids))
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    found = {row[0] for row in q.all()}
    missing = sorted(product_ids - found)
    if missing:
        raise ValidationError(f"Product not found: {missing[0]}")


def _build_items(items: list[dict]) -> list[OrderItem]:
    return [OrderItem(product_id=i["product_id"], quantity=i["quantity"]) for i in items]


def list_orders(
    trip_id: int | None = None,
    client_id: int | None = None,
    status: str | None = None,
) -> list[Order]:
    """All orders, newest first, optionally filtered."""
    q = _order_query()
    if trip_id is not None:
        q = q.filter(Order.trip_id == trip_id)
    if client_id is not None:
        q = q.filter(Order.client_id == client_id)
    if status is not None:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def list_pending_orders() -> list[Order]:
    return list_orders(status=ORDER_STATUS_PENDING)


def list_orders_for_client(client_id: int) -> list[Order]:
    return list_orders(client_id=client_id)


def get_order(order_id: int) -> Order:
    order = _order_query().filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def create_order(
    client_id: int,
    trip_id: int | None,
    items: list[dict],
    source: str = ORDER_SOURCE_ADMIN,
    observation: str | None = None,
) -> Order:
    """
    Staff order, created directly against a trip.
    items must already be cleaned by enforce_rules_order_items.
    """
    if trip_id is None:
        raise ValidationError("trip_id is required")
    _require_client(client_id)
    _require_trip(trip_id)
    _require_products(items)

    order = Order(
        client_id=client_id,
        trip_id=trip_id,
        source=source,
        status=ORDER_STATUS_ASSIGNED,
        paid=False,
        observation=observation,
        items=_build_items(items),
    )
    db.session.add(order)
    db.session.commit()
    return get_order(order.id)


def create_client_order(client_id: int, items: list[dict], observation: str | None = None) -> Order:
    """Portal order: always pending, only active products may be ordered."""
    _require_client(client_id)
    _require_products(items, active_only=True)

    order = Order(
        client_id=client_id,
        trip_id=None,
        source=ORDER_SOURCE_CLIENT,
        status=ORDER_STATUS_PENDING,
        paid=False,
        observation=observation,
        items=_build_items(items),
    )
    db.session.add(order)
    db.session.commit()
    current_app.logger.info("Client %s submitted order %s", client_id, order.id)
    return get_order(order.id)


def update_order(
    order_id: int,
    client_id: int,
    trip_id: int | None,
    items: list[dict],
) -> Order:
    """Replace client, trip and the whole item set. status follows trip_id."""
    order = get_order(order_id)
    _require_client(client_id)
    if trip_id is not None:
        _require_trip(trip_id)
    _require_products(items)

    try:
        order.client_id = client_id
        order.trip_id = trip_id
        order.status = _status_for_trip(trip_id)
        # delete-orphan cascade removes the old rows
        order.items = []
        db.session.flush()
        order.items = _build_items(items)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.expire_all()
    return get_order(order_id)


def delete_order(order_id: int) -> None:
    order = get_order(order_id)
    db.session.delete(order)
    db.session.commit()


def set_payment(
    order_id: int,
    paid: bool,
    observation: str | None = None,
    payment_method: str | None = None,
) -> Order:
    """Payment flags only; trip and status are left alone."""
    order = get_order(order_id)
    order.paid = paid
    order.observation = observation
    order.payment_method = payment_method
    db.session.commit()
    return get_order(order_id)


def approve_order(order_id: int, trip_id: int | None) -> Order:
    """
    Assign a pending order to a trip.

    If the client already has another order on that trip, the pending
    order's lines are merged into it (quantities summed per product, new
    products appended) and the pending order is deleted. Otherwise the
    pending order itself gets the trip.

    The pending -> assigned transition is a conditional UPDATE on
    status = 'pending'; a concurrent approval that loses the race matches
    zero rows and fails with ConflictError.

    Returns the order that now holds the items.
    """
    if trip_id is None:
        raise ValidationError("trip_id is required")

    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.status != ORDER_STATUS_PENDING:
        raise ConflictError("Order is not pending approval")
    _require_trip(trip_id)

    client_id = order.client_id
    result_id = order_id

    try:
        claimed = db.session.query(Order).filter(
            Order.id == order_id,
            Order.status == ORDER_STATUS_PENDING,
        ).update(
            {"status": ORDER_STATUS_ASSIGNED, "trip_id": trip_id},
            synchronize_session=False,
        )
        if claimed != 1:
            raise ConflictError("Order is not pending approval")

        target = db.session.query(Order).filter(
            Order.client_id == client_id,
            Order.trip_id == trip_id,
            Order.id != order_id,
        ).order_by(Order.id.asc()).first()

        if target is not None:
            lines = {item.product_id: item for item in target.items}
            pending_items = (
                db.session.query(OrderItem)
                .filter(OrderItem.order_id == order_id)
                .order_by(OrderItem.id.asc())
                .all()
            )
            for item in pending_items:
                line = lines.get(item.product_id)
                if line is not None:
                    line.quantity += item.quantity
                else:
                    line = OrderItem(product_id=item.product_id, quantity=item.quantity)
                    target.items.append(line)
                    lines[item.product_id] = line
            db.session.flush()

            db.session.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
            db.session.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
            result_id = target.id

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.expire_all()
    if result_id != order_id:
        current_app.logger.info("Order %s approved and merged into order %s (trip %s)", order_id, result_id, trip_id)
    else:
        current_app.logger.info("Order %s approved into trip %s", order_id, trip_id)
    return get_order(result_id)


def reject_order(order_id: int) -> None:
    """
    Delete a pending order and its items. Nothing is kept.
    Missing order -> NotFoundError; assigned order -> ConflictError.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.status != ORDER_STATUS_PENDING:
        raise ConflictError("Only pending orders can be rejected")

    try:
        db.session.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
        deleted = db.session.query(Order).filter(
            Order.id == order_id,
            Order.status == ORDER_STATUS_PENDING,
        ).delete(synchronize_session=False)
        if deleted != 1:
            raise ConflictError("Order is not pending approval")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.expire_all()
    current_app.logger.info("Order %s rejected", order_id)
