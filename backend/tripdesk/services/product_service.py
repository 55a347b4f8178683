# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError


PRODUCT_MUTABLE_FIELDS = {"name", "color", "size", "is_active"}

# PostgreSQL foreign_key_violation
PG_FOREIGN_KEY_VIOLATION = "23503"


class ProductInUseError(Exception):
    """Product is referenced by order items."""


def _is_foreign_key_violation(err: IntegrityError) -> bool:
    orig = getattr(err, "orig", None)
    if getattr(orig, "pgcode", None) == PG_FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(orig)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(active_only: bool = False) -> list[Product]:
    q = db.session.query(Product)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.size.asc(), Product.name.asc(), Product.color.asc()).all()


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p


def create_product(patch: dict) -> Product:
    p = Product(is_active=True)
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.commit()
    return p


def update_product(product_id: int, patch: dict) -> Product:
    p = get_product(product_id)
    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(product_id: int) -> None:
    """
    Raises ProductInUseError when order items still reference the product.
    The database foreign key is the source of truth for that check.
    """
    get_product(product_id)
    try:
        db.session.query(Product).filter(Product.id == product_id).delete(synchronize_session=False)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if _is_foreign_key_violation(e):
            raise ProductInUseError(
                "Product is in use by existing orders and cannot be deleted."
            ) from e
        raise
    db.session.expire_all()
