# Overview: Flask API routes for receivables and payables; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff, require_module
from ..models import FinancialEntry
from ..models.finance import ENTRY_TYPES, ENTRY_STATUSES
from ..services import finance_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_recurrence,
    ValidationError,
    NotFoundError,
)
from tripdesk.time_utils import parse_iso_date


_ENTRY_FIELDS = {
    "type", "description", "amount", "due_date", "paid_date", "status",
    "category", "observation", "client_id", "trip_id",
}

ENTRY_POLICY = ModelValidationPolicy(
    writable_fields=_ENTRY_FIELDS,
    required_on_create={"type", "description", "amount", "due_date", "category"},
    choices={"type": ENTRY_TYPES, "status": ENTRY_STATUSES},
    extra_fields={"is_recurring", "recurrence_period", "recurrence_count"},
)

ENTRY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=_ENTRY_FIELDS,
    choices={"type": ENTRY_TYPES, "status": ENTRY_STATUSES},
)

finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


def _date_arg(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


@finance_bp.get("/entries")
@require_staff
@require_module("finance")
def list_entries_route():
    """
    Query params: type, status, start_date, end_date (due date range, inclusive).
    """
    entry_type = request.args.get("type")
    status = request.args.get("status")
    try:
        if entry_type is not None and entry_type not in ENTRY_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(sorted(ENTRY_TYPES))}")
        if status is not None and status not in ENTRY_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(ENTRY_STATUSES))}")
        entries = finance_service.list_entries(
            entry_type=entry_type,
            status=status,
            start_date=_date_arg("start_date"),
            end_date=_date_arg("end_date"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify([e.to_dict() for e in entries]), 200


@finance_bp.post("/entries")
@require_staff
@require_module("finance")
def create_entry_route():
    """
    Create an entry, or a series of installments.

    Recurrence options (all optional):
    - is_recurring: bool
    - recurrence_period: weekly | biweekly | monthly | quarterly | yearly
    - recurrence_count: 1..60

    Returns a single entry, or a list when more than one installment was created.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=FinancialEntry, payload=payload, policy=ENTRY_POLICY, partial=False)
        period, count = enforce_rules_recurrence(patch)
        entries = finance_service.create_entry(patch, recurrence_period=period, recurrence_count=count)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create financial entry")
        return jsonify({"error": "Internal server error"}), 500

    if len(entries) == 1:
        return jsonify(entries[0].to_dict()), 201
    return jsonify([e.to_dict() for e in entries]), 201


@finance_bp.get("/entries/<int:entry_id>")
@require_staff
@require_module("finance")
def get_entry_route(entry_id: int):
    try:
        return jsonify(finance_service.get_entry(entry_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@finance_bp.put("/entries/<int:entry_id>")
@require_staff
@require_module("finance")
def update_entry_route(entry_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=FinancialEntry, payload=payload, policy=ENTRY_UPDATE_POLICY, partial=True)
        entry = finance_service.update_entry(entry_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(entry.to_dict()), 200


@finance_bp.delete("/entries/<int:entry_id>")
@require_staff
@require_module("finance")
def delete_entry_route(entry_id: int):
    try:
        finance_service.delete_entry(entry_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


@finance_bp.get("/summary")
@require_staff
@require_module("finance")
def summary_route():
    try:
        summary = finance_service.summarize_entries(
            start_date=_date_arg("start_date"),
            end_date=_date_arg("end_date"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(summary), 200
