"""
Route progress along intermediate stops.
"""

from typing import List, Sequence

from tracking_backend.app.domain.tracking.geo import Coordinate, haversine_distance


def remaining_stops(
    latitude: float,
    longitude: float,
    origin: Coordinate,
    stops: Sequence[Coordinate],
    tolerance: float = 0.9,
) -> List[Coordinate]:
    """
    Return the intermediate stops the bus has not passed yet.

    A stop is still ahead when its distance from the origin exceeds
    ``tolerance`` times the bus's own distance from the origin. The slack
    keeps a stop that is being passed right now from dropping out on GPS
    noise. Assumes distance from origin grows along the route, which holds
    for inter-city roads but not for loops.

    Route order of ``stops`` is preserved.
    """
    if not stops:
        return []

    bus_from_origin = haversine_distance(origin.latitude, origin.longitude, latitude, longitude)
    threshold = bus_from_origin * tolerance

    return [
        stop for stop in stops
        if haversine_distance(origin.latitude, origin.longitude, stop.latitude, stop.longitude) > threshold
    ]
