"""
City Coordinate reference model.

Maps a place name to its coordinates. Read-only for the tracking core.
"""

from sqlalchemy import Column, Integer, String, Float
from tracking_backend.app.db.session import Base


class CityCoordinate(Base):
    """City or stop with an optional geographic position."""
    __tablename__ = "city_coordinates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    region = Column(String(200), nullable=True)

    # Not every city has been geocoded yet
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    def __repr__(self):
        return f"<CityCoordinate(name='{self.name}', lat={self.latitude}, lng={self.longitude})>"
