from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import re
from tripdesk.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Date, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum money value: 9,999,999,999.99
# Stored as decimal strings, so this only guards against nonsense input
MAX_AMOUNT = Decimal("9999999999.99")

# Upper bound for a single order line
MAX_ITEM_QUANTITY = 1_000_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., approving an already assigned order)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enum-like columns and their allowed values
    - extra_fields: non-column keys passed through untouched for enforce_rules_* helpers
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, set[str]] = field(default_factory=dict)
    extra_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Calendar dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    - enum choices
    Returns a cleaned patch dict with only writable fields (plus any
    policy.extra_fields, unvalidated).

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    Raises ValidationError on the first problem found.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in policy.extra_fields:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.extra_fields:
            patch[k] = raw
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        allowed = policy.choices.get(k)
        if allowed is not None and val not in allowed:
            raise ValidationError(f"{k} must be one of: {', '.join(sorted(allowed))}")

        patch[k] = val

    return patch


def normalize_amount(value: Any, field_name: str = "amount") -> str:
    """
    Money travels as decimal strings ("1234.50"). Accepts strings or numbers,
    returns a string quantized to two places.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    text = str(value).strip().replace(",", ".")
    if not text:
        raise ValidationError(f"{field_name} is required")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a decimal number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a decimal number")
    if amount < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field_name} cannot exceed {MAX_AMOUNT}")
    return str(amount.quantize(Decimal("0.01")))


def normalize_cnpj(value: Any) -> str:
    """Tax ids are matched on digits only ("12.345.678/0001-90" -> "12345678000190")."""
    return re.sub(r"\D", "", str(value or ""))


def _require_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    return value


def enforce_rules_order_items(items: Any) -> list[dict]:
    """
    Order line list shared by staff and portal order endpoints.

    Each line is {"product_id": int, "quantity": int > 0}; at least one line,
    and a product may appear only once per order.
    """
    if items is None:
        raise ValidationError("items is required")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("items must contain at least one product")

    cleaned: list[dict] = []
    seen: set[int] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        unknown = set(item.keys()) - {"product_id", "quantity"}
        if unknown:
            raise ValidationError(f"items[{index}]: field not allowed: {sorted(unknown)[0]}")
        product_id = _require_int(item.get("product_id"), f"items[{index}].product_id")
        quantity = _require_int(item.get("quantity"), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        if quantity > MAX_ITEM_QUANTITY:
            raise ValidationError(f"items[{index}].quantity cannot exceed {MAX_ITEM_QUANTITY}")
        if product_id in seen:
            raise ValidationError(f"items[{index}]: duplicate product_id {product_id}")
        seen.add(product_id)
        cleaned.append({"product_id": product_id, "quantity": quantity})
    return cleaned


def enforce_rules_recurrence(patch: dict) -> tuple[str | None, int]:
    """
    Pulls the recurrence options out of a finance entry patch.

    Returns (period, count); count == 1 means a single entry.
    """
    from .services.finance_service import RECURRENCE_PERIODS

    is_recurring = patch.pop("is_recurring", False)
    period = patch.pop("recurrence_period", None)
    count = patch.pop("recurrence_count", None)

    if is_recurring is None:
        is_recurring = False
    if not isinstance(is_recurring, bool):
        raise ValidationError("is_recurring must be true or false")
    if period is not None and period not in RECURRENCE_PERIODS:
        raise ValidationError(f"recurrence_period must be one of: {', '.join(RECURRENCE_PERIODS)}")
    if count is not None:
        count = _require_int(count, "recurrence_count")
        if count < 1 or count > 60:
            raise ValidationError("recurrence_count must be between 1 and 60")

    if not is_recurring or period is None or count is None or count <= 1:
        return None, 1
    return period, count


def enforce_rules_trip(patch: dict, existing_start=None, existing_end=None) -> None:
    start = patch.get("start_date", existing_start)
    end = patch.get("end_date", existing_end)
    if start is not None and end is not None and end < start:
        raise ValidationError("end_date cannot be before start_date")
