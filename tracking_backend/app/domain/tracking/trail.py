"""
Trail compaction for map rendering.
"""

from typing import List, Sequence, TypeVar

from tracking_backend.app.domain.tracking.geo import projected_offset_m

P = TypeVar("P")


def compact_trail(points: Sequence[P], min_separation_m: float = 55.0) -> List[P]:
    """
    Drop points that barely moved from the last kept point.

    The first point is always kept, and so is the final one so the map
    never loses the current position. ``points`` must be time-ordered and
    expose ``latitude``/``longitude``.
    """
    if len(points) <= 1:
        return list(points)

    kept = [points[0]]
    for point in points[1:]:
        anchor = kept[-1]
        offset = projected_offset_m(anchor.latitude, anchor.longitude, point.latitude, point.longitude)
        if offset > min_separation_m:
            kept.append(point)

    if kept[-1] is not points[-1]:
        kept.append(points[-1])

    return kept
