"""
Speed estimation from recent GPS samples.

Device-reported speed is trusted over displacement math when enough
samples carry it, since it reflects instantaneous motion and road
curvature rather than the chord between two fixes.
"""

from typing import Optional, Sequence

from tracking_backend.app.domain.tracking.geo import as_utc, haversine_distance


def estimate_average_speed(
    samples: Sequence,
    min_device_samples: int = 3,
    min_elapsed_seconds: float = 3.6,
    max_plausible_speed_kmh: float = 200.0,
) -> Optional[float]:
    """
    Estimate the recent average speed of a bus.

    Args:
        samples: Positions ordered by ``recorded_at`` ascending. Each needs
            ``latitude``, ``longitude``, ``recorded_at`` and ``speed`` (km/h
            or None).
        min_device_samples: Positive device speeds needed before their mean
            is used instead of displacement.
        min_elapsed_seconds: Shorter spans between first and last sample
            are treated as unknown.
        max_plausible_speed_kmh: Displacement speeds at or above this are
            GPS jitter.

    Returns:
        Speed in km/h rounded to one decimal, or None when unknown.
    """
    device_speeds = [s.speed for s in samples if s.speed is not None and s.speed > 0]
    if len(device_speeds) >= min_device_samples:
        return round(sum(device_speeds) / len(device_speeds), 1)

    if len(samples) < 2:
        return None

    first = samples[0]
    last = samples[-1]

    elapsed_s = (as_utc(last.recorded_at) - as_utc(first.recorded_at)).total_seconds()
    if elapsed_s < min_elapsed_seconds:
        return None

    distance_km = haversine_distance(first.latitude, first.longitude, last.latitude, last.longitude)
    speed = distance_km / (elapsed_s / 3600.0)

    if speed <= 0 or speed >= max_plausible_speed_kmh:
        return None
    return round(speed, 1)
