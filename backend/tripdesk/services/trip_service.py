# Overview: Service-layer operations for trips; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Trip
from ..models.trips import TRIP_STATUS_OPEN
from ..validation import NotFoundError, enforce_rules_trip


TRIP_MUTABLE_FIELDS = {"name", "start_date", "end_date", "status"}


def list_trips(status: str | None = None) -> list[Trip]:
    q = db.session.query(Trip)
    if status:
        q = q.filter(Trip.status == status)
    return q.order_by(Trip.start_date.desc(), Trip.id.desc()).all()


def get_trip(trip_id: int) -> Trip:
    trip = db.session.get(Trip, trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def create_trip(patch: dict) -> Trip:
    enforce_rules_trip(patch)
    trip = Trip(status=TRIP_STATUS_OPEN)
    for k, v in patch.items():
        if k in TRIP_MUTABLE_FIELDS:
            setattr(trip, k, v)
    db.session.add(trip)
    db.session.commit()
    return trip


def update_trip(trip_id: int, patch: dict) -> Trip:
    trip = get_trip(trip_id)
    enforce_rules_trip(patch, existing_start=trip.start_date, existing_end=trip.end_date)
    for k, v in patch.items():
        if k in TRIP_MUTABLE_FIELDS:
            setattr(trip, k, v)
    db.session.commit()
    return trip
