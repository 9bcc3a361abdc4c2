"""
Trip Position database model.

Stores the GPS breadcrumb trail for live trip tracking.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Index
from sqlalchemy.sql import func
from tracking_backend.app.db.session import Base


class TripPosition(Base):
    """
    Trip Position model.

    One GPS reading pushed by the bus. Rows are append-only: the tracking
    core never updates or deletes them.
    """
    __tablename__ = "trip_positions"
    __table_args__ = (
        Index("ix_trip_positions_trip_recorded", "trip_id", "recorded_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True)

    # GPS reading
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    altitude = Column(Float, nullable=True)  # meters
    accuracy = Column(Float, nullable=True)  # meters
    heading = Column(Float, nullable=True)  # degrees, 0-360
    speed = Column(Float, nullable=True)  # km/h

    # Timing
    recorded_at = Column(DateTime(timezone=True), nullable=False)  # When GPS was recorded
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)  # When inserted to DB

    def __repr__(self):
        return f"<TripPosition(trip_id={self.trip_id}, lat={self.latitude}, lng={self.longitude})>"
