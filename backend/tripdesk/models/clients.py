from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_utc_z


class Client(db.Model):
    """
    Business customer (reseller) that places orders.

    cnpj keeps the tax id as typed; cnpj_digits is the normalized form used
    for uniqueness and for the portal login lookup.
    """
    __tablename__ = "clients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    legal_name = db.Column(db.String(255), nullable=False)
    trade_name = db.Column(db.String(255), nullable=False)
    cnpj = db.Column(db.String(32), nullable=False)
    cnpj_digits = db.Column(db.String(32), nullable=False, unique=True, index=True)
    state_registration = db.Column(db.String(64), nullable=True)

    zip_code = db.Column(db.String(16), nullable=True)
    street = db.Column(db.String(255), nullable=False)
    number = db.Column(db.String(32), nullable=False)
    district = db.Column(db.String(128), nullable=True)
    city = db.Column(db.String(128), nullable=False)
    state = db.Column(db.String(64), nullable=False)

    phones = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "legal_name": self.legal_name,
            "trade_name": self.trade_name,
            "cnpj": self.cnpj,
            "state_registration": self.state_registration,
            "zip_code": self.zip_code,
            "street": self.street,
            "number": self.number,
            "district": self.district,
            "city": self.city,
            "state": self.state,
            "phones": self.phones,
            "email": self.email,
            "contact_person": self.contact_person,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "trade_name": self.trade_name,
            "legal_name": self.legal_name,
            "cnpj": self.cnpj,
        }


class ClientPrice(db.Model):
    """
    Per-client unit price for a product size.

    Prices are looked up when orders are read, not copied onto orders, so a
    change here reprices every existing order of the client.
    """
    __tablename__ = "client_prices"
    __table_args__ = (
        db.UniqueConstraint("client_id", "size", name="uq_client_prices_client_size"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    size = db.Column(db.String(64), nullable=False)
    price = db.Column(db.String(32), nullable=False)  # decimal string, 2 places

    client = db.relationship("Client")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "size": self.size,
            "price": self.price,
        }
