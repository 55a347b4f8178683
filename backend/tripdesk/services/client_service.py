# Overview: Service-layer operations for clients; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Client,
    ClientPrice,
    Order,
    OrderItem,
    Message,
    FinancialEntry,
    SessionToken,
)
from ..validation import ValidationError, ConflictError, NotFoundError, normalize_amount, normalize_cnpj


CLIENT_MUTABLE_FIELDS = {
    "legal_name", "trade_name", "cnpj", "state_registration",
    "zip_code", "street", "number", "district", "city", "state",
    "phones", "email", "contact_person", "is_active",
}


def _ensure_cnpj_available(cnpj_digits: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Client).filter(Client.cnpj_digits == cnpj_digits)
    if exclude_id is not None:
        q = q.filter(Client.id != exclude_id)
    if q.first():
        raise ConflictError("A client with this CNPJ already exists")


def apply_client_patch(client: Client, patch: dict) -> None:
    for k, v in patch.items():
        if k not in CLIENT_MUTABLE_FIELDS:
            continue
        if k == "cnpj":
            digits = normalize_cnpj(v)
            if not digits:
                raise ValidationError("cnpj must contain digits")
            _ensure_cnpj_available(digits, exclude_id=client.id)
            client.cnpj_digits = digits
        setattr(client, k, v)


def list_clients(include_inactive: bool = True, search: str | None = None) -> list[Client]:
    q = db.session.query(Client)
    if not include_inactive:
        q = q.filter(Client.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        digits = normalize_cnpj(search)
        conditions = [Client.trade_name.ilike(pattern), Client.legal_name.ilike(pattern)]
        if digits:
            conditions.append(Client.cnpj_digits.like(f"%{digits}%"))
        q = q.filter(db.or_(*conditions))
    return q.order_by(Client.trade_name.asc(), Client.id.asc()).all()


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")
    return client


def get_client_by_cnpj(cnpj: str) -> Client | None:
    digits = normalize_cnpj(cnpj)
    if not digits:
        return None
    return db.session.query(Client).filter_by(cnpj_digits=digits).first()


def create_client(patch: dict) -> Client:
    client = Client(is_active=True)
    apply_client_patch(client, patch)
    db.session.add(client)
    db.session.commit()
    return client


def update_client(client_id: int, patch: dict) -> Client:
    client = get_client(client_id)
    apply_client_patch(client, patch)
    db.session.commit()
    return client


def delete_client(client_id: int) -> None:
    """
    Hard delete with cascade: orders, order items, prices, messages and
    portal sessions of the client go in the same transaction. Financial
    entries are kept and detached from the client.
    """
    client = get_client(client_id)

    try:
        order_ids = db.session.query(Order.id).filter(Order.client_id == client_id)
        db.session.query(OrderItem).filter(
            OrderItem.order_id.in_(order_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        db.session.query(Order).filter(Order.client_id == client_id).delete(synchronize_session=False)
        db.session.query(ClientPrice).filter(ClientPrice.client_id == client_id).delete(synchronize_session=False)
        db.session.query(Message).filter(Message.client_id == client_id).delete(synchronize_session=False)
        db.session.query(SessionToken).filter(SessionToken.client_id == client_id).delete(synchronize_session=False)
        db.session.query(FinancialEntry).filter(FinancialEntry.client_id == client_id).update(
            {"client_id": None}, synchronize_session=False
        )
        db.session.delete(client)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.expire_all()
    current_app.logger.info("Client %s deleted with its orders, prices and messages", client_id)


def list_client_prices(client_id: int) -> list[ClientPrice]:
    get_client(client_id)
    return (
        db.session.query(ClientPrice)
        .filter(ClientPrice.client_id == client_id)
        .order_by(ClientPrice.size.asc())
        .all()
    )


def upsert_client_price(client_id: int, size, price) -> ClientPrice:
    """Create or overwrite the price for (client, size)."""
    get_client(client_id)

    size = str(size).strip() if size is not None else ""
    if not size:
        raise ValidationError("size is required")
    if len(size) > 64:
        raise ValidationError("size exceeds max length 64")
    amount = normalize_amount(price, "price")

    row = db.session.query(ClientPrice).filter_by(client_id=client_id, size=size).first()
    if row:
        row.price = amount
    else:
        row = ClientPrice(client_id=client_id, size=size, price=amount)
        db.session.add(row)
    db.session.commit()
    return row
