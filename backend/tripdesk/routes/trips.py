# Overview: Flask API routes for delivery trips. Trips are closed, never deleted.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, require_module
from ..models import Trip
from ..models.trips import TRIP_STATUSES
from ..services import trip_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError


TRIP_POLICY = ModelValidationPolicy(
    writable_fields={"name", "start_date", "end_date", "status"},
    required_on_create={"name", "start_date"},
    choices={"status": TRIP_STATUSES},
)

trips_bp = Blueprint("trips", __name__, url_prefix="/api/trips")


@trips_bp.get("")
@require_staff
@require_module("trips")
def list_trips_route():
    status = request.args.get("status")
    if status is not None and status not in TRIP_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(sorted(TRIP_STATUSES))}"}), 400
    return jsonify([t.to_dict() for t in trip_service.list_trips(status=status)]), 200


@trips_bp.post("")
@require_staff
@require_module("trips")
def create_trip_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Trip, payload=payload, policy=TRIP_POLICY, partial=False)
        trip = trip_service.create_trip(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(trip.to_dict()), 201


@trips_bp.get("/<int:trip_id>")
@require_staff
@require_module("trips")
def get_trip_route(trip_id: int):
    try:
        return jsonify(trip_service.get_trip(trip_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@trips_bp.put("/<int:trip_id>")
@require_staff
@require_module("trips")
def update_trip_route(trip_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Trip, payload=payload, policy=TRIP_POLICY, partial=True)
        trip = trip_service.update_trip(trip_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(trip.to_dict()), 200
