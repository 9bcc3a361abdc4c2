"""
Position Ingestion Service.

Records a GPS sample for a trip and keeps the live tracking view current:

1. Append the sample to the position history (must succeed)
2. Recompute the ETA from recent speed and remaining stops (best-effort)
3. Refresh the trip and vehicle latest-position mirrors (best-effort)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_backend.app.core.config import settings
from tracking_backend.app.core.exceptions import PersistenceError
from tracking_backend.app.domain.tracking.eta_calculator import ETAResult, calculate_eta
from tracking_backend.app.domain.tracking.route_stops import remaining_stops
from tracking_backend.app.domain.tracking.speed_estimator import estimate_average_speed
from tracking_backend.app.domain.tracking.validation import ensure_valid_position
from tracking_backend.app.services import tracking_store

logger = logging.getLogger(__name__)


@dataclass
class PositionInput:
    """One GPS reading plus the route details needed to estimate arrival."""
    trip_id: int
    latitude: float
    longitude: float
    recorded_at: datetime
    destination: str
    origin: Optional[str] = None
    intermediate_stops: Union[str, Sequence[str], None] = None
    vehicle_id: Optional[int] = None
    altitude: Optional[float] = None
    accuracy: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None  # km/h

    @classmethod
    def for_trip(cls, trip, **reading) -> "PositionInput":
        """Build an input from a Trip row and the device reading."""
        return cls(
            trip_id=trip.id,
            vehicle_id=trip.vehicle_id,
            origin=trip.origin,
            destination=trip.destination,
            intermediate_stops=trip.intermediate_stops,
            **reading
        )


@dataclass
class IngestResult:
    position_id: int
    estimated_arrival: Optional[datetime]
    mirror_updated: bool


class PositionIngestor:

    @staticmethod
    async def ingest(
        db: AsyncSession,
        position: PositionInput,
        now: Optional[datetime] = None,
    ) -> IngestResult:
        """
        Process one GPS sample.

        Args:
            db: Database session (committed by this method)
            position: The sample and its trip's route details
            now: Reference time for validation and the ETA

        Returns:
            IngestResult with the new history row id and the estimated
            arrival (None when it cannot be known)

        Raises:
            InvalidPositionError: Coordinates or timestamp rejected
            PersistenceError: The history write failed
        """
        now = now or datetime.now(timezone.utc)

        recorded_at = ensure_valid_position(
            position.latitude,
            position.longitude,
            position.recorded_at,
            now=now,
            max_age_seconds=settings.max_position_age_seconds,
            max_future_skew_seconds=settings.max_future_skew_seconds,
        )

        # 1. History write: the only step allowed to fail the request
        try:
            row = await tracking_store.insert_position(
                db,
                trip_id=position.trip_id,
                vehicle_id=position.vehicle_id,
                latitude=position.latitude,
                longitude=position.longitude,
                altitude=position.altitude,
                accuracy=position.accuracy,
                heading=position.heading,
                speed=position.speed,
                recorded_at=recorded_at,
            )
            await db.commit()
            position_id = row.id
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to store position for trip %s", position.trip_id, exc_info=True)
            raise PersistenceError() from e

        # 2. ETA. A lookup miss clears the stored arrival, a failure keeps it
        estimated_arrival = None
        eta_failed = False
        try:
            eta = await PositionIngestor.estimate_arrival(db, position, now=now)
            if eta is not None:
                estimated_arrival = eta.estimated_arrival
        except Exception:
            eta_failed = True
            # A failed read aborts the open transaction on PostgreSQL
            await db.rollback()
            logger.warning("ETA calculation failed for trip %s", position.trip_id, exc_info=True)

        # 3. Mirrors
        mirror_updated = False
        try:
            mirror_updated = await tracking_store.update_trip_mirror(
                db,
                trip_id=position.trip_id,
                latitude=position.latitude,
                longitude=position.longitude,
                speed=position.speed,
                recorded_at=recorded_at,
                estimated_arrival=estimated_arrival,
                keep_arrival=eta_failed,
            )
            if position.vehicle_id:
                await tracking_store.update_vehicle_mirror(
                    db,
                    vehicle_id=position.vehicle_id,
                    latitude=position.latitude,
                    longitude=position.longitude,
                    recorded_at=recorded_at,
                )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            mirror_updated = False
            logger.warning("Latest-position mirror update failed for trip %s", position.trip_id, exc_info=True)
        else:
            if not mirror_updated:
                logger.info(
                    "Trip %s mirror kept; sample at %s is not the newest",
                    position.trip_id, recorded_at.isoformat()
                )

        return IngestResult(
            position_id=position_id,
            estimated_arrival=estimated_arrival,
            mirror_updated=mirror_updated,
        )

    @staticmethod
    async def estimate_arrival(
        db: AsyncSession,
        position: PositionInput,
        now: Optional[datetime] = None,
    ) -> Optional[ETAResult]:
        """
        Estimate arrival for a trip from its latest sample.

        Returns None when the destination has no known coordinates. An
        unresolved origin, or stops that cannot be decoded, fall back to a
        direct route to the destination; stops without coordinates are left
        out of the route.
        """
        stop_names = tracking_store.parse_stop_names(position.intermediate_stops)
        coordinates = await tracking_store.find_coordinates(
            db, [position.destination, position.origin, *stop_names]
        )

        destination = coordinates.get(position.destination)
        if destination is None:
            logger.info("No coordinates for destination %r; ETA unavailable", position.destination)
            return None

        recent = await tracking_store.recent_positions(db, position.trip_id, settings.speed_window_size)
        average_speed = estimate_average_speed(
            recent,
            min_device_samples=settings.min_device_speed_samples,
            min_elapsed_seconds=settings.min_elapsed_seconds,
            max_plausible_speed_kmh=settings.max_plausible_speed_kmh,
        )

        ahead = []
        origin = coordinates.get(position.origin) if position.origin else None
        route_stops = [coordinates[name] for name in stop_names if name in coordinates]
        if route_stops and origin is not None:
            ahead = remaining_stops(
                position.latitude,
                position.longitude,
                origin,
                route_stops,
                tolerance=settings.stop_passed_tolerance,
            )

        return calculate_eta(
            position.latitude,
            position.longitude,
            destination,
            average_speed_kmh=average_speed,
            stops=ahead or None,
            now=now,
            winding_factor=settings.winding_factor,
            default_speed_kmh=settings.default_speed_kmh,
            min_speed_kmh=settings.min_speed_kmh,
        )
