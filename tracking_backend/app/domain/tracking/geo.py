"""
Geographic helpers for tracking.

Great-circle distance, a local metric projection for short hops, and the
coordinate value type shared by the ETA components.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Mean radius of Earth in kilometers
EARTH_RADIUS_KM = 6371.0
METERS_PER_DEGREE = math.pi * EARTH_RADIUS_KM * 1000.0 / 180.0


@dataclass(frozen=True)
class Coordinate:
    """A named point on the route (origin, stop or destination)."""
    latitude: float
    longitude: float
    name: Optional[str] = None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)

    # Haversine formula
    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(a, b) -> float:
    """Great-circle distance in km between two objects with latitude/longitude."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def projected_offset_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Planar distance in meters using an equirectangular projection.

    Accurate for the tens-of-meters hops between consecutive GPS samples
    at any latitude, unlike a raw degree delta.
    """
    mean_lat = math.radians((lat1 + lat2) / 2)
    north_m = (lat2 - lat1) * METERS_PER_DEGREE
    east_m = (lon2 - lon1) * METERS_PER_DEGREE * math.cos(mean_lat)
    return math.hypot(north_m, east_m)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
