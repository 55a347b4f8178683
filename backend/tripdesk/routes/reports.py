# Overview: Flask API routes for reports and the dashboard counters.

from flask import Blueprint, request, jsonify, Response

from ..decorators import require_staff, require_module
from ..models.orders import ORDER_SOURCES
from ..services import report_service
from ..validation import ValidationError
from tripdesk.time_utils import parse_iso_date, utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/admin")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _report_filters() -> dict:
    filters = {}
    for name in ("date_from", "date_to"):
        try:
            filters[name] = parse_iso_date(request.args.get(name))
        except ValueError:
            raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")

    for name in ("client_id", "trip_id"):
        raw = request.args.get(name)
        if raw in (None, "", "all"):
            filters[name] = None
            continue
        try:
            filters[name] = int(raw)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")

    source = request.args.get("source")
    if source in (None, "", "all"):
        source = None
    elif source not in ORDER_SOURCES:
        raise ValidationError(f"source must be one of: {', '.join(sorted(ORDER_SOURCES))}")
    filters["source"] = source
    return filters


@reports_bp.get("/report/sales")
@require_staff
@require_module("reports")
def sales_report_route():
    """
    Query params: date_from, date_to (order creation date, inclusive),
    client_id, trip_id, source (admin | client).
    """
    try:
        report = report_service.sales_report(**_report_filters())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200


@reports_bp.get("/report/sales.xlsx")
@require_staff
@require_module("reports")
def sales_report_xlsx_route():
    try:
        report = report_service.sales_report(**_report_filters())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    filename = f"sales-report-{utcnow().strftime('%Y%m%d')}.xlsx"
    return Response(
        report_service.sales_report_xlsx(report),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_bp.get("/dashboard")
@require_staff
@require_module("dashboard")
def dashboard_route():
    return jsonify(report_service.dashboard_counts()), 200
