"""
Vehicle database model.

Buses carry their own copy of the latest position so fleet maps can be
drawn without touching trip history.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime
from sqlalchemy.sql import func
from tracking_backend.app.db.session import Base


class Vehicle(Base):
    """
    Vehicle model.

    The ``last_*`` columns mirror the most recent sample of whichever trip
    the bus is currently running.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Vehicle identification
    plate_number = Column(String(50), unique=True, nullable=False, index=True)
    side_number = Column(String(50), nullable=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Latest-position mirror
    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    last_position_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate_number}')>"
