"""
Tracking freshness tests.
"""

from datetime import datetime, timedelta, timezone

from tracking_backend.app.domain.tracking.tracking_status import TrackingStatus, classify_tracking_status

NOW = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def test_off_when_tracking_inactive():
    assert classify_tracking_status(False, NOW, now=NOW) == TrackingStatus.OFF


def test_off_without_position():
    assert classify_tracking_status(True, None, now=NOW) == TrackingStatus.OFF


def test_live_within_threshold():
    assert classify_tracking_status(True, NOW - timedelta(seconds=30), now=NOW) == TrackingStatus.LIVE
    # Boundary is inclusive
    assert classify_tracking_status(True, NOW - timedelta(seconds=120), now=NOW) == TrackingStatus.LIVE


def test_stale_after_threshold():
    assert classify_tracking_status(True, NOW - timedelta(seconds=121), now=NOW) == TrackingStatus.STALE


def test_custom_threshold():
    status = classify_tracking_status(
        True, NOW - timedelta(seconds=200), now=NOW, stale_threshold_seconds=300
    )
    assert status == TrackingStatus.LIVE


def test_naive_position_time_treated_as_utc():
    naive = (NOW - timedelta(seconds=10)).replace(tzinfo=None)
    assert classify_tracking_status(True, naive, now=NOW) == TrackingStatus.LIVE


def test_status_serializes_lowercase():
    assert TrackingStatus.STALE.value == "stale"


def test_one_minute_live_five_minutes_stale():
    assert classify_tracking_status(True, NOW - timedelta(seconds=60), now=NOW) == TrackingStatus.LIVE
    assert classify_tracking_status(True, NOW - timedelta(seconds=300), now=NOW) == TrackingStatus.STALE
    assert classify_tracking_status(False, NOW - timedelta(seconds=60), now=NOW) == TrackingStatus.OFF
