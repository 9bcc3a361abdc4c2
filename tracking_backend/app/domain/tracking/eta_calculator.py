"""
Arrival-time estimation for buses in transit.

Uses great-circle legs through the remaining stops with a winding factor
to approximate road distance (inter-city roads rarely run straight).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from tracking_backend.app.domain.tracking.geo import Coordinate, haversine_distance


@dataclass(frozen=True)
class ETAResult:
    """Outcome of an ETA calculation."""
    remaining_distance_km: float  # straight-line x winding factor, 1 decimal
    remaining_minutes: int
    estimated_arrival: datetime
    speed_used: float  # km/h


def calculate_eta(
    latitude: float,
    longitude: float,
    destination: Coordinate,
    average_speed_kmh: Optional[float] = None,
    stops: Optional[Sequence[Coordinate]] = None,
    now: Optional[datetime] = None,
    winding_factor: float = 1.3,
    default_speed_kmh: float = 60.0,
    min_speed_kmh: float = 20.0,
) -> ETAResult:
    """
    Calculate the ETA from the current position to the destination.

    Args:
        latitude, longitude: Current bus position
        destination: Destination coordinate
        average_speed_kmh: Recent average speed; None or 0 falls back to
            ``default_speed_kmh``
        stops: Remaining intermediate stops in route order; the distance is
            summed leg by leg through them when given
        now: Reference time for the arrival timestamp (defaults to UTC now)

    Returns:
        ETAResult
    """
    distance_km = 0.0
    if stops:
        prev_lat, prev_lon = latitude, longitude
        for stop in stops:
            distance_km += haversine_distance(prev_lat, prev_lon, stop.latitude, stop.longitude)
            prev_lat, prev_lon = stop.latitude, stop.longitude
        distance_km += haversine_distance(prev_lat, prev_lon, destination.latitude, destination.longitude)
    else:
        distance_km = haversine_distance(latitude, longitude, destination.latitude, destination.longitude)

    distance_km *= winding_factor

    speed_used = max(average_speed_kmh or default_speed_kmh, min_speed_kmh)
    remaining_minutes = int(round(distance_km / speed_used * 60))

    now = now or datetime.now(timezone.utc)

    return ETAResult(
        remaining_distance_km=round(distance_km, 1),
        remaining_minutes=remaining_minutes,
        estimated_arrival=now + timedelta(minutes=remaining_minutes),
        speed_used=speed_used,
    )


def format_eta(minutes: int) -> str:
    """Human-readable remaining time, e.g. ``"2h 5m"``."""
    if minutes < 1:
        return "Arriving"
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
