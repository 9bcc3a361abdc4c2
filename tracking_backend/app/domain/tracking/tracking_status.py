"""
Tracking freshness classification.

Evaluated at read time from the trip mirror; never persisted.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from tracking_backend.app.domain.tracking.geo import as_utc


class TrackingStatus(str, enum.Enum):
    """Freshness of a trip's live position."""
    LIVE = "live"  # Position received within the stale threshold
    STALE = "stale"  # Tracking on, but the device went quiet
    OFF = "off"  # Tracking never started or switched off


def classify_tracking_status(
    tracking_active: bool,
    last_position_at: Optional[datetime],
    now: Optional[datetime] = None,
    stale_threshold_seconds: int = 120,
) -> TrackingStatus:
    if not tracking_active or last_position_at is None:
        return TrackingStatus.OFF

    now = as_utc(now or datetime.now(timezone.utc))
    age_s = (now - as_utc(last_position_at)).total_seconds()

    if age_s <= stale_threshold_seconds:
        return TrackingStatus.LIVE
    return TrackingStatus.STALE
