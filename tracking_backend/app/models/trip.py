"""
Trip database model.

Trips are scheduled outside the tracking core. Tracking only writes the
denormalized latest-position mirror kept on this row.
"""

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from tracking_backend.app.db.session import Base
from tracking_backend.app.models.trip_enums import TripStatus


class Trip(Base):
    """
    Trip model.

    A bus journey from an origin city to a destination city, optionally
    through intermediate stops. The ``last_*`` columns and
    ``estimated_arrival`` are a last-write cache of the position history,
    not the authoritative record.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Route
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    intermediate_stops = Column(Text, nullable=True)  # JSON-encoded list of city names

    # Schedule
    departure_time = Column(DateTime(timezone=True), nullable=False)
    estimated_duration = Column(Integer, nullable=True)  # minutes

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.SCHEDULED, nullable=False, index=True)

    # Vehicle assignment
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)

    # OsmAnd background tracking credential
    tracking_token = Column(String(64), unique=True, nullable=True, index=True)

    # Latest-position mirror
    tracking_active = Column(Boolean, default=False, nullable=False)
    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    last_speed = Column(Float, nullable=True)  # km/h as reported by the device
    last_position_at = Column(DateTime(timezone=True), nullable=True)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Trip(id={self.id}, {self.origin} -> {self.destination}, status='{self.status.value}')>"
