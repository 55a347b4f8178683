# Overview: Service-layer operations for the public showcase site content.

from __future__ import annotations

from ..extensions import db
from ..models import ShowcaseProduct, HeroSlide, SiteSetting, ContactSubmission
from ..validation import NotFoundError, ValidationError


SHOWCASE_MUTABLE_FIELDS = {"name", "description", "category", "image_url", "is_active", "sort_order"}
SLIDE_MUTABLE_FIELDS = {"title", "subtitle", "button_text", "button_link", "image_url", "sort_order", "is_active"}

MAX_SETTING_KEY_LENGTH = 128


def _apply(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


def _get(model, obj_id: int, label: str):
    obj = db.session.get(model, obj_id)
    if not obj:
        raise NotFoundError(f"{label} not found")
    return obj


# Showcase products

def list_showcase_products(active_only: bool = False) -> list[ShowcaseProduct]:
    q = db.session.query(ShowcaseProduct)
    if active_only:
        q = q.filter(ShowcaseProduct.is_active.is_(True))
    return q.order_by(ShowcaseProduct.sort_order.asc(), ShowcaseProduct.id.asc()).all()


def get_showcase_product(product_id: int, active_only: bool = False) -> ShowcaseProduct:
    product = _get(ShowcaseProduct, product_id, "Showcase product")
    if active_only and not product.is_active:
        raise NotFoundError("Showcase product not found")
    return product


def create_showcase_product(patch: dict) -> ShowcaseProduct:
    product = ShowcaseProduct(is_active=True, sort_order=0)
    _apply(product, patch, SHOWCASE_MUTABLE_FIELDS)
    db.session.add(product)
    db.session.commit()
    return product


def update_showcase_product(product_id: int, patch: dict) -> ShowcaseProduct:
    product = get_showcase_product(product_id)
    _apply(product, patch, SHOWCASE_MUTABLE_FIELDS)
    db.session.commit()
    return product


def delete_showcase_product(product_id: int) -> None:
    db.session.delete(get_showcase_product(product_id))
    db.session.commit()


# Hero slides

def list_slides(active_only: bool = False) -> list[HeroSlide]:
    q = db.session.query(HeroSlide)
    if active_only:
        q = q.filter(HeroSlide.is_active.is_(True))
    return q.order_by(HeroSlide.sort_order.asc(), HeroSlide.id.asc()).all()


def create_slide(patch: dict) -> HeroSlide:
    slide = HeroSlide(is_active=True, sort_order=0)
    _apply(slide, patch, SLIDE_MUTABLE_FIELDS)
    db.session.add(slide)
    db.session.commit()
    return slide


def update_slide(slide_id: int, patch: dict) -> HeroSlide:
    slide = _get(HeroSlide, slide_id, "Slide")
    _apply(slide, patch, SLIDE_MUTABLE_FIELDS)
    db.session.commit()
    return slide


def delete_slide(slide_id: int) -> None:
    db.session.delete(_get(HeroSlide, slide_id, "Slide"))
    db.session.commit()


# Site settings

def get_settings_map() -> dict[str, str]:
    rows = db.session.query(SiteSetting).order_by(SiteSetting.key.asc()).all()
    return {row.key: row.value for row in rows}


def upsert_settings(values) -> dict[str, str]:
    """Create or overwrite each key. Values are stored as strings."""
    if not isinstance(values, dict):
        raise ValidationError("Settings must be an object of key/value pairs")

    for key, value in values.items():
        key = str(key).strip()
        if not key:
            raise ValidationError("Setting keys cannot be blank")
        if len(key) > MAX_SETTING_KEY_LENGTH:
            raise ValidationError(f"Setting key exceeds max length {MAX_SETTING_KEY_LENGTH}")
        if isinstance(value, (dict, list)):
            raise ValidationError(f"Setting {key} must be a string")
        text = "" if value is None else str(value)

        row = db.session.query(SiteSetting).filter_by(key=key).first()
        if row:
            row.value = text
        else:
            db.session.add(SiteSetting(key=key, value=text))

    db.session.commit()
    return get_settings_map()


# Contact submissions

def create_contact_submission(patch: dict) -> ContactSubmission:
    submission = ContactSubmission(is_read=False)
    _apply(submission, patch, {"name", "email", "phone", "subject", "message"})
    db.session.add(submission)
    db.session.commit()
    return submission


def list_contact_submissions() -> list[ContactSubmission]:
    return (
        db.session.query(ContactSubmission)
        .order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc())
        .all()
    )


def count_unread_contact_submissions() -> int:
    return db.session.query(ContactSubmission).filter(ContactSubmission.is_read.is_(False)).count()


def mark_contact_submission_read(submission_id: int) -> ContactSubmission:
    submission = _get(ContactSubmission, submission_id, "Contact submission")
    submission.is_read = True
    db.session.commit()
    return submission


def delete_contact_submission(submission_id: int) -> None:
    db.session.delete(_get(ContactSubmission, submission_id, "Contact submission"))
    db.session.commit()
