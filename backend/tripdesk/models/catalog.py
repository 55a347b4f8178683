from __future__ import annotations

from ..extensions import db


class Product(db.Model):
    """Catalog item. `size` is the pricing category used by ClientPrice."""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    color = db.Column(db.String(64), nullable=False)
    size = db.Column(db.String(64), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "size": self.size,
            "is_active": self.is_active,
        }
