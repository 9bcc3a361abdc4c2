"""
Boundary checks for inbound GPS samples.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from tracking_backend.app.core.exceptions import InvalidPositionError
from tracking_backend.app.domain.tracking.geo import as_utc, is_valid_coordinate


def ensure_valid_position(
    latitude: float,
    longitude: float,
    recorded_at: datetime,
    now: Optional[datetime] = None,
    max_age_seconds: int = 6 * 3600,
    max_future_skew_seconds: int = 300,
) -> datetime:
    """
    Reject impossible coordinates and samples outside the accepted window.

    Returns:
        ``recorded_at`` normalized to UTC

    Raises:
        InvalidPositionError
    """
    if not is_valid_coordinate(latitude, longitude):
        raise InvalidPositionError(
            "Coordinates out of range",
            details={"latitude": latitude, "longitude": longitude}
        )

    now = as_utc(now or datetime.now(timezone.utc))
    recorded_at = as_utc(recorded_at)

    if recorded_at > now + timedelta(seconds=max_future_skew_seconds):
        raise InvalidPositionError(
            "Position timestamp is in the future",
            details={"recorded_at": recorded_at.isoformat()}
        )
    if recorded_at < now - timedelta(seconds=max_age_seconds):
        raise InvalidPositionError(
            "Position timestamp is too old",
            details={"recorded_at": recorded_at.isoformat()}
        )

    return recorded_at
