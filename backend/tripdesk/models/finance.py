from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_iso_date, to_utc_z


ENTRY_TYPE_RECEIVABLE = "receivable"
ENTRY_TYPE_PAYABLE = "payable"
ENTRY_TYPES = {ENTRY_TYPE_RECEIVABLE, ENTRY_TYPE_PAYABLE}

ENTRY_STATUS_OPEN = "open"
ENTRY_STATUS_PAID = "paid"
ENTRY_STATUS_OVERDUE = "overdue"
ENTRY_STATUSES = {ENTRY_STATUS_OPEN, ENTRY_STATUS_PAID, ENTRY_STATUS_OVERDUE}


class FinancialEntry(db.Model):
    """
    Accounts receivable / payable line.

    Recurring bills are expanded into independent rows at creation time;
    there is no link between installments afterwards.
    """
    __tablename__ = "financial_entries"
    __table_args__ = (
        db.Index("ix_financial_entries_type_status", "type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.String(32), nullable=False)  # decimal string, 2 places
    due_date = db.Column(db.Date, nullable=False, index=True)
    paid_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=ENTRY_STATUS_OPEN)
    category = db.Column(db.String(128), nullable=False)
    observation = db.Column(db.Text, nullable=True)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    trip_id = db.Column(db.Integer, db.ForeignKey("trips.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client")
    trip = db.relationship("Trip")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "amount": self.amount,
            "due_date": to_iso_date(self.due_date),
            "paid_date": to_iso_date(self.paid_date),
            "status": self.status,
            "category": self.category,
            "observation": self.observation,
            "client_id": self.client_id,
            "trip_id": self.trip_id,
            "client": self.client.to_summary() if self.client else None,
            "trip": self.trip.to_dict() if self.trip else None,
            "created_at": to_utc_z(self.created_at),
        }
