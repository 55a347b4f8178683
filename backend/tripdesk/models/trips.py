from __future__ import annotations

from ..extensions import db
from tripdesk.time_utils import to_iso_date


TRIP_STATUS_OPEN = "open"
TRIP_STATUS_CLOSED = "closed"
TRIP_STATUSES = {TRIP_STATUS_OPEN, TRIP_STATUS_CLOSED}


class Trip(db.Model):
    """
    Delivery batch. Orders and financial entries are grouped by trip.

    Trips are never deleted; they are closed instead.
    """
    __tablename__ = "trips"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=TRIP_STATUS_OPEN)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "status": self.status,
        }
