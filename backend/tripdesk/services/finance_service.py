# Overview: Service-layer operations for finance; encapsulates business logic and database work.

"""
Accounts receivable / payable.

Recurring bills are expanded at creation into independent installments,
each described as "<description> (i/count)". Month based periods follow the
calendar: Jan 31 + 1 month is the last day of February.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from ..extensions import db
from ..models import FinancialEntry, Client, Trip
from ..models.finance import (
    ENTRY_TYPE_RECEIVABLE,
    ENTRY_TYPE_PAYABLE,
    ENTRY_STATUS_OPEN,
    ENTRY_STATUS_PAID,
    ENTRY_STATUS_OVERDUE,
)
from ..validation import NotFoundError, normalize_amount
from . import order_service, pricing_service
from tripdesk.time_utils import add_months


RECURRENCE_PERIODS = ("weekly", "biweekly", "monthly", "quarterly", "yearly")

ENTRY_MUTABLE_FIELDS = {
    "type", "description", "amount", "due_date", "paid_date", "status",
    "category", "observation", "client_id", "trip_id",
}


def installment_due_date(base: date, period: str, index: int) -> date:
    """Due date of installment `index` (0-based) counted from base."""
    if period == "weekly":
        return base + timedelta(days=7 * index)
    if period == "biweekly":
        return base + timedelta(days=14 * index)
    if period == "monthly":
        return add_months(base, index)
    if period == "quarterly":
        return add_months(base, 3 * index)
    if period == "yearly":
        return add_months(base, 12 * index)
    raise ValueError(f"Unknown recurrence period: {period}")


def _check_references(patch: dict) -> None:
    client_id = patch.get("client_id")
    if client_id is not None and not db.session.get(Client, client_id):
        raise NotFoundError("Client not found")
    trip_id = patch.get("trip_id")
    if trip_id is not None and not db.session.get(Trip, trip_id):
        raise NotFoundError("Trip not found")


def _apply_entry_patch(entry: FinancialEntry, patch: dict) -> None:
    for k, v in patch.items():
        if k not in ENTRY_MUTABLE_FIELDS:
            continue
        if k == "amount":
            v = normalize_amount(v)
        setattr(entry, k, v)


def create_entry(patch: dict, recurrence_period: str | None = None, recurrence_count: int = 1) -> list[FinancialEntry]:
    """
    Create one entry, or `recurrence_count` installments when a period is
    given and count > 1. All rows are written in one transaction.
    """
    _check_references(patch)
    amount = normalize_amount(patch.get("amount"))
    status = patch.get("status") or ENTRY_STATUS_OPEN

    if recurrence_period is None or recurrence_count <= 1:
        entry = FinancialEntry(status=status)
        _apply_entry_patch(entry, {**patch, "amount": amount, "status": status})
        db.session.add(entry)
        db.session.commit()
        return [entry]

    base = patch["due_date"]
    entries = []
    for i in range(recurrence_count):
        entry = FinancialEntry(
            type=patch["type"],
            description=f"{patch['description']} ({i + 1}/{recurrence_count})",
            amount=amount,
            due_date=installment_due_date(base, recurrence_period, i),
            paid_date=None,
            status=status,
            category=patch["category"],
            observation=patch.get("observation"),
            client_id=patch.get("client_id"),
            trip_id=patch.get("trip_id"),
        )
        db.session.add(entry)
        entries.append(entry)

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return entries


def list_entries(
    entry_type: str | None = None,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[FinancialEntry]:
    q = db.session.query(FinancialEntry)
    if entry_type:
        q = q.filter(FinancialEntry.type == entry_type)
    if status:
        q = q.filter(FinancialEntry.status == status)
    if start_date:
        q = q.filter(FinancialEntry.due_date >= start_date)
    if end_date:
        q = q.filter(FinancialEntry.due_date <= end_date)
    return q.order_by(FinancialEntry.due_date.desc(), FinancialEntry.id.desc()).all()


def get_entry(entry_id: int) -> FinancialEntry:
    entry = db.session.get(FinancialEntry, entry_id)
    if not entry:
        raise NotFoundError("Financial entry not found")
    return entry


def update_entry(entry_id: int, patch: dict) -> FinancialEntry:
    entry = get_entry(entry_id)
    _check_references(patch)
    _apply_entry_patch(entry, patch)
    db.session.commit()
    return entry


def delete_entry(entry_id: int) -> None:
    entry = get_entry(entry_id)
    db.session.delete(entry)
    db.session.commit()


def summarize_entries(start_date: date | None = None, end_date: date | None = None) -> dict:
    """
    Cash-flow totals per type and status, plus the balances.

    Orders count as receivables at their read-time priced total: paid orders
    feed balance_paid, unpaid ones balance_pending. The date range applies to
    entries only.
    """
    entries = list_entries(start_date=start_date, end_date=end_date)

    totals = {
        entry_type: {s: Decimal("0.00") for s in (ENTRY_STATUS_OPEN, ENTRY_STATUS_PAID, ENTRY_STATUS_OVERDUE)}
        for entry_type in (ENTRY_TYPE_RECEIVABLE, ENTRY_TYPE_PAYABLE)
    }
    for entry in entries:
        bucket = totals.get(entry.type, {})
        if entry.status in bucket:
            bucket[entry.status] += Decimal(entry.amount)

    orders_receivable = Decimal("0.00")
    orders_paid = Decimal("0.00")
    for priced in pricing_service.price_orders(order_service.list_orders()):
        order_total = Decimal(priced["total"])
        orders_receivable += order_total
        if priced["paid"]:
            orders_paid += order_total
    orders_unpaid = orders_receivable - orders_paid

    def _pending(entry_type: str) -> Decimal:
        return totals[entry_type][ENTRY_STATUS_OPEN] + totals[entry_type][ENTRY_STATUS_OVERDUE]

    balance_paid = totals[ENTRY_TYPE_RECEIVABLE][ENTRY_STATUS_PAID] + orders_paid - totals[ENTRY_TYPE_PAYABLE][ENTRY_STATUS_PAID]
    balance_pending = _pending(ENTRY_TYPE_RECEIVABLE) + orders_unpaid - _pending(ENTRY_TYPE_PAYABLE)

    return {
        "receivable": {k: str(v) for k, v in totals[ENTRY_TYPE_RECEIVABLE].items()},
        "payable": {k: str(v) for k, v in totals[ENTRY_TYPE_PAYABLE].items()},
        "orders_receivable": str(orders_receivable),
        "orders_paid": str(orders_paid),
        "balance_paid": str(balance_paid),
        "balance_pending": str(balance_pending),
        "entry_count": len(entries),
    }
