# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

import io
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font

from ..extensions import db
from ..models import Order, Message, Client, Product, Trip, ContactSubmission, FinancialEntry
from ..models.orders import ORDER_STATUS_PENDING
from ..models.messages import DIRECTION_CLIENT_TO_ADMIN
from ..models.trips import TRIP_STATUS_OPEN
from ..models.finance import ENTRY_STATUS_OPEN, ENTRY_STATUS_OVERDUE, ENTRY_TYPE_RECEIVABLE, ENTRY_TYPE_PAYABLE
from . import order_service, pricing_service


def _money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


def _in_range(created_at: datetime | None, date_from: date | None, date_to: date | None) -> bool:
    if created_at is None:
        return date_from is None and date_to is None
    created = created_at.replace(tzinfo=None)
    if date_from and created < datetime.combine(date_from, time.min):
        return False
    # date_to is inclusive of the whole day
    if date_to and created >= datetime.combine(date_to + timedelta(days=1), time.min):
        return False
    return True


def sales_report(
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    client_id: int | None = None,
    trip_id: int | None = None,
    source: str | None = None,
) -> dict:
    """
    Orders matching the filters, priced at read time, with totals:
    revenue, items, orders, unique clients, average ticket, and breakdowns
    per product, per client and per month (YYYY-MM of created_at).
    """
    orders = order_service.list_orders(trip_id=trip_id, client_id=client_id)
    orders = [
        o for o in orders
        if (source is None or o.source == source) and _in_range(o.created_at, date_from, date_to)
    ]
    priced = pricing_service.price_orders(orders)

    revenue = Decimal("0.00")
    total_items = 0
    by_product: dict[int, dict] = {}
    by_client: dict[int, dict] = {}
    by_month: dict[str, dict] = {}

    for order, data in zip(orders, priced):
        order_total = Decimal(data["total"])
        revenue += order_total
        total_items += data["item_count"]

        client_row = by_client.setdefault(order.client_id, {
            "client_id": order.client_id,
            "client_name": order.client.trade_name if order.client else None,
            "orders": 0,
            "items": 0,
            "revenue": Decimal("0.00"),
        })
        client_row["orders"] += 1
        client_row["items"] += data["item_count"]
        client_row["revenue"] += order_total

        month_key = order.created_at.strftime("%Y-%m") if order.created_at else "unknown"
        month_row = by_month.setdefault(month_key, {"month": month_key, "orders": 0, "revenue": Decimal("0.00")})
        month_row["orders"] += 1
        month_row["revenue"] += order_total

        for item in data["items"]:
            product = item.get("product") or {}
            product_row = by_product.setdefault(item["product_id"], {
                "product_id": item["product_id"],
                "name": product.get("name"),
                "color": product.get("color"),
                "size": product.get("size"),
                "quantity": 0,
                "revenue": Decimal("0.00"),
            })
            product_row["quantity"] += item["quantity"]
            product_row["revenue"] += Decimal(item["line_total"])

    def _finish(rows, key):
        out = []
        for row in sorted(rows, key=key):
            out.append({**row, "revenue": _money(row["revenue"])})
        return out

    order_count = len(orders)
    avg_ticket = revenue / order_count if order_count else Decimal("0.00")

    return {
        "filters": {
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "client_id": client_id,
            "trip_id": trip_id,
            "source": source,
        },
        "orders": priced,
        "totals": {
            "revenue": _money(revenue),
            "items": total_items,
            "orders": order_count,
            "unique_clients": len(by_client),
            "avg_ticket": _money(avg_ticket),
        },
        "by_product": _finish(by_product.values(), key=lambda r: (-r["quantity"], r["product_id"])),
        "by_client": _finish(by_client.values(), key=lambda r: (-r["revenue"], r["client_id"])),
        "by_month": _finish(by_month.values(), key=lambda r: r["month"]),
    }


def sales_report_xlsx(report: dict) -> bytes:
    """Workbook with Orders / Products / Clients sheets for a sales_report() result."""
    wb = Workbook()
    bold = Font(bold=True)

    ws = wb.active
    ws.title = "Orders"
    ws.append(["Order", "Created", "Client", "Trip", "Source", "Status", "Paid", "Items", "Total"])
    for order in report["orders"]:
        ws.append([
            order["id"],
            order["created_at"],
            (order.get("client") or {}).get("trade_name"),
            (order.get("trip") or {}).get("name"),
            order["source"],
            order["status"],
            "yes" if order["paid"] else "no",
            order["item_count"],
            float(order["total"]),
        ])
    totals = report["totals"]
    ws.append([])
    ws.append(["Revenue", float(totals["revenue"])])
    ws.append(["Orders", totals["orders"]])
    ws.append(["Items", totals["items"]])
    ws.append(["Unique clients", totals["unique_clients"]])
    ws.append(["Average ticket", float(totals["avg_ticket"])])

    products = wb.create_sheet("Products")
    products.append(["Product", "Color", "Size", "Quantity", "Revenue"])
    for row in report["by_product"]:
        products.append([row["name"], row["color"], row["size"], row["quantity"], float(row["revenue"])])

    clients = wb.create_sheet("Clients")
    clients.append(["Client", "Orders", "Items", "Revenue"])
    for row in report["by_client"]:
        clients.append([row["client_name"], row["orders"], row["items"], float(row["revenue"])])

    for sheet in wb.worksheets:
        for cell in sheet[1]:
            cell.font = bold

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def dashboard_counts() -> dict:
    """Counters for the back-office landing page."""
    def _open_total(entry_type: str) -> str:
        amounts = db.session.query(FinancialEntry.amount).filter(
            FinancialEntry.type == entry_type,
            FinancialEntry.status.in_((ENTRY_STATUS_OPEN, ENTRY_STATUS_OVERDUE)),
        ).all()
        return _money(sum((Decimal(a[0]) for a in amounts), Decimal("0.00")))

    return {
        "pending_orders": db.session.query(Order).filter(Order.status == ORDER_STATUS_PENDING).count(),
        "unread_messages": db.session.query(Message).filter(
            Message.direction == DIRECTION_CLIENT_TO_ADMIN,
            Message.is_read.is_(False),
        ).count(),
        "unread_contact_submissions": db.session.query(ContactSubmission).filter(
            ContactSubmission.is_read.is_(False)
        ).count(),
        "active_clients": db.session.query(Client).filter(Client.is_active.is_(True)).count(),
        "active_products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
        "open_trips": db.session.query(Trip).filter(Trip.status == TRIP_STATUS_OPEN).count(),
        "receivable_open": _open_total(ENTRY_TYPE_RECEIVABLE),
        "payable_open": _open_total(ENTRY_TYPE_PAYABLE),
    }
