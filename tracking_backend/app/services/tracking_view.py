"""
Tracking View Service.

Assembles what passengers and fleet operators see on the map: freshness
status, the mirrored latest position, route metadata with coordinates,
and an optional compacted trail. Reads never lock against ingestion.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tracking_backend.app.core.config import settings
from tracking_backend.app.core.exceptions import ResourceNotFoundError
from tracking_backend.app.domain.tracking.geo import as_utc
from tracking_backend.app.domain.tracking.trail import compact_trail
from tracking_backend.app.domain.tracking.tracking_status import TrackingStatus, classify_tracking_status
from tracking_backend.app.models.trip import Trip
from tracking_backend.app.services import tracking_store


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def _current_position(trip: Trip) -> Optional[Dict[str, Any]]:
    if trip.last_latitude is None:
        return None
    return {
        "latitude": trip.last_latitude,
        "longitude": trip.last_longitude,
        "speed": trip.last_speed,
        "updated_at": _utc(trip.last_position_at),
    }


def _tracking_status(trip: Trip, now: datetime) -> TrackingStatus:
    return classify_tracking_status(
        trip.tracking_active,
        trip.last_position_at,
        now=now,
        stale_threshold_seconds=settings.stale_threshold_seconds,
    )


class TrackingViewService:

    @staticmethod
    async def get_trip_tracking(
        db: AsyncSession,
        trip_id: int,
        include_history: bool = False,
        history_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Build the live tracking view of one trip.

        Args:
            db: Database session
            trip_id: Trip to show
            include_history: Attach the compacted GPS trail
            history_limit: Most recent samples to consider for the trail,
                capped at the configured maximum

        Raises:
            ResourceNotFoundError: Unknown trip
        """
        now = now or datetime.now(timezone.utc)

        trip = await tracking_store.get_trip(db, trip_id)
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)

        # Route with coordinates for map rendering
        stop_names = tracking_store.parse_stop_names(trip.intermediate_stops)
        coordinates = await tracking_store.find_coordinates(
            db, [trip.origin, trip.destination, *stop_names]
        )

        def place(name: str) -> Dict[str, Any]:
            coordinate = coordinates.get(name)
            return {
                "name": name,
                "latitude": coordinate.latitude if coordinate else None,
                "longitude": coordinate.longitude if coordinate else None,
            }

        route = {
            "origin": place(trip.origin),
            "destination": place(trip.destination),
            "stops": [place(name) for name in stop_names],
        }

        history: List[Any] = []
        if include_history and trip.tracking_active:
            limit = history_limit or settings.history_default_limit
            limit = max(1, min(limit, settings.history_max_limit))
            positions = await tracking_store.recent_positions(db, trip.id, limit)
            history = compact_trail(positions, min_separation_m=settings.trail_min_separation_m)

        vehicle = None
        if trip.vehicle_id:
            vehicle = await tracking_store.get_vehicle(db, trip.vehicle_id)

        return {
            "trip_id": trip.id,
            "status": trip.status.value,
            "departure_time": _utc(trip.departure_time),
            "estimated_duration": trip.estimated_duration,
            "vehicle": vehicle,
            "tracking": _tracking_status(trip, now),
            "current_position": _current_position(trip),
            "estimated_arrival": _utc(trip.estimated_arrival),
            "route": route,
            "history": history,
        }

    @staticmethod
    async def get_fleet(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Overview of every departed trip for the fleet map."""
        now = now or datetime.now(timezone.utc)

        trips = await tracking_store.list_departed_trips(db)

        fleet = [
            {
                "trip_id": trip.id,
                "origin": trip.origin,
                "destination": trip.destination,
                "departure_time": _utc(trip.departure_time),
                "estimated_duration": trip.estimated_duration,
                "vehicle_id": trip.vehicle_id,
                "tracking": _tracking_status(trip, now),
                "position": _current_position(trip),
                "estimated_arrival": _utc(trip.estimated_arrival),
            }
            for trip in trips
        ]

        return {
            "fleet": fleet,
            "total_departed": len(trips),
            "total_tracking": sum(1 for item in fleet if item["tracking"] != TrackingStatus.OFF),
        }
