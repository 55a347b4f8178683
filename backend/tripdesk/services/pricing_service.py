# Overview: Read-time pricing of orders from per-client price tables.

"""
Orders never store prices. Every read resolves the unit price of each line
from ClientPrice (order.client_id, product.size); a missing row prices the
line at zero. Editing a client's price table therefore reprices all of
that client's orders, past and future.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import ClientPrice, Order


ZERO = Decimal("0.00")


def _money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


def get_price_table(client_ids) -> dict[int, dict[str, Decimal]]:
    """{client_id: {size: Decimal}} for the given clients in one query."""
    client_ids = {cid for cid in client_ids if cid is not None}
    table: dict[int, dict[str, Decimal]] = {cid: {} for cid in client_ids}
    if not client_ids:
        return table
    rows = db.session.query(ClientPrice).filter(ClientPrice.client_id.in_(client_ids)).all()
    for row in rows:
        table[row.client_id][row.size] = Decimal(row.price)
    return table


def price_order(order: Order, price_table: dict[int, dict[str, Decimal]] | None = None) -> dict:
    """
    Serialize an order with unit_price / line_total per item and the order
    total. Pass price_table when pricing many orders at once.
    """
    if price_table is None:
        price_table = get_price_table([order.client_id])
    prices = price_table.get(order.client_id, {})

    data = order.to_dict()
    total = ZERO
    item_count = 0
    for item_dict, item in zip(data["items"], order.items):
        size = item.product.size if item.product else None
        unit_price = prices.get(size, ZERO)
        line_total = unit_price * item.quantity
        item_dict["unit_price"] = _money(unit_price)
        item_dict["line_total"] = _money(line_total)
        total += line_total
        item_count += item.quantity

    data["item_count"] = item_count
    data["total"] = _money(total)
    return data


def price_orders(orders: list[Order]) -> list[dict]:
    table = get_price_table(o.client_id for o in orders)
    return [price_order(o, table) for o in orders]
