from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_utc_z


ORDER_SOURCE_ADMIN = "admin"
ORDER_SOURCE_CLIENT = "client"
ORDER_SOURCES = {ORDER_SOURCE_ADMIN, ORDER_SOURCE_CLIENT}

# status is stored, and always agrees with trip_id:
#   pending  <=> trip_id IS NULL (waiting for staff to pick a trip)
#   assigned <=> trip_id set
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_ASSIGNED = "assigned"
ORDER_STATUSES = {ORDER_STATUS_PENDING, ORDER_STATUS_ASSIGNED}


class Order(db.Model):
    """
    Client order, optionally assigned to a trip.

    Portal orders start pending and are either approved into a trip (merging
    into the client's existing order for that trip, if any) or rejected.
    Staff orders are created directly against a trip.

    Prices are not stored here; see services.pricing_service.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_client_trip", "client_id", "trip_id"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    trip_id = db.Column(db.Integer, db.ForeignKey("trips.id"), nullable=True, index=True)

    source = db.Column(db.String(16), nullable=False, default=ORDER_SOURCE_ADMIN)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_ASSIGNED)

    paid = db.Column(db.Boolean, nullable=False, default=False)
    payment_method = db.Column(db.String(64), nullable=True)
    observation = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client")
    trip = db.relationship("Trip")
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ORDER_STATUS_PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "trip_id": self.trip_id,
            "source": self.source,
            "status": self.status,
            "paid": self.paid,
            "payment_method": self.payment_method,
            "observation": self.observation,
            "created_at": to_utc_z(self.created_at),
            "client": self.client.to_summary() if self.client else None,
            "trip": self.trip.to_dict() if self.trip else None,
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """One product line of an order. quantity is always > 0."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_dict() if self.product else None,
        }
