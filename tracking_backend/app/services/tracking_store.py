"""
Tracking persistence service.

Async store operations used by position ingestion and the tracking read
endpoints: trip and reference-data lookups, the append-only position
history, and the conditional latest-position mirrors.
"""

import json
import logging
import secrets
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_backend.app.domain.tracking.geo import Coordinate
from tracking_backend.app.models.city_coordinate import CityCoordinate
from tracking_backend.app.models.trip import Trip
from tracking_backend.app.models.trip_enums import TripStatus
from tracking_backend.app.models.trip_position import TripPosition
from tracking_backend.app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


async def get_trip(db: AsyncSession, trip_id: int) -> Optional[Trip]:
    result = await db.execute(select(Trip).where(Trip.id == trip_id))
    return result.scalar_one_or_none()


async def get_trip_by_token(db: AsyncSession, token: str) -> Optional[Trip]:
    result = await db.execute(select(Trip).where(Trip.tracking_token == token))
    return result.scalar_one_or_none()


async def get_vehicle(db: AsyncSession, vehicle_id: int) -> Optional[Vehicle]:
    return await db.get(Vehicle, vehicle_id)


async def assign_tracking_token(db: AsyncSession, trip_id: int) -> Tuple[str, bool]:
    """
    Give a trip its OsmAnd tracking token, keeping one that already exists.

    The token is only written while the column is still empty, so two
    concurrent requests end up sharing whichever token landed first.

    Returns:
        (token, existing) where existing is False only for a new token
    """
    token = secrets.token_hex(32)
    result = await db.execute(
        update(Trip).where(
            Trip.id == trip_id,
            Trip.tracking_token.is_(None)
        ).values(tracking_token=token).execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount > 0:
        logger.info("Issued tracking token for trip %s", trip_id)
        return token, False

    current = await db.execute(select(Trip.tracking_token).where(Trip.id == trip_id))
    return current.scalar_one(), True


async def list_departed_trips(db: AsyncSession) -> List[Trip]:
    """All trips currently on the road, newest departure first."""
    result = await db.execute(
        select(Trip).where(
            Trip.status == TripStatus.DEPARTED
        ).order_by(Trip.departure_time.desc())
    )
    return list(result.scalars().all())


def parse_stop_names(raw: Union[str, Sequence[str], None]) -> List[str]:
    """
    Decode a trip's intermediate stop list.

    Accepts the JSON text stored on the trip or an already decoded list.
    Malformed data degrades to no stops, i.e. a direct origin to
    destination route.
    """
    if not raw:
        return []

    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed intermediate stop list: %r", raw)
            return []
    else:
        decoded = raw

    if not isinstance(decoded, list) or not all(isinstance(name, str) for name in decoded):
        logger.warning("Ignoring intermediate stop list that is not a list of names: %r", raw)
        return []

    return decoded


async def find_coordinates(db: AsyncSession, names: Iterable[str]) -> Dict[str, Coordinate]:
    """
    Resolve place names to coordinates.

    Names that are unknown, or known but not geocoded, are simply absent
    from the result.
    """
    wanted = {name for name in names if name}
    if not wanted:
        return {}

    result = await db.execute(
        select(CityCoordinate).where(CityCoordinate.name.in_(wanted))
    )

    return {
        city.name: Coordinate(latitude=city.latitude, longitude=city.longitude, name=city.name)
        for city in result.scalars().all()
        if city.latitude is not None and city.longitude is not None
    }


async def insert_position(
    db: AsyncSession,
    trip_id: int,
    latitude: float,
    longitude: float,
    recorded_at: datetime,
    vehicle_id: Optional[int] = None,
    altitude: Optional[float] = None,
    accuracy: Optional[float] = None,
    heading: Optional[float] = None,
    speed: Optional[float] = None,
) -> TripPosition:
    """Append one sample to the history. Caller commits."""
    position = TripPosition(
        trip_id=trip_id,
        vehicle_id=vehicle_id,
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        accuracy=accuracy,
        heading=heading,
        speed=speed,
        recorded_at=recorded_at,
    )
    db.add(position)
    await db.flush()
    return position


async def recent_positions(db: AsyncSession, trip_id: int, limit: int) -> List[TripPosition]:
    """
    Most recent ``limit`` samples of a trip.

    Returns:
        Samples ordered by ``recorded_at`` ascending
    """
    result = await db.execute(
        select(TripPosition).where(
            TripPosition.trip_id == trip_id
        ).order_by(TripPosition.recorded_at.desc(), TripPosition.id.desc()).limit(limit)
    )
    positions = list(result.scalars().all())
    positions.reverse()
    return positions


async def has_position_since(db: AsyncSession, trip_id: int, since: datetime) -> bool:
    result = await db.execute(
        select(TripPosition.id).where(
            TripPosition.trip_id == trip_id,
            TripPosition.recorded_at >= since
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def update_trip_mirror(
    db: AsyncSession,
    trip_id: int,
    latitude: float,
    longitude: float,
    speed: Optional[float],
    recorded_at: datetime,
    estimated_arrival: Optional[datetime] = None,
    keep_arrival: bool = False,
) -> bool:
    """
    Overwrite the trip's latest-position mirror if the sample is newer.

    The stored arrival is replaced by `estimated_arrival`, None included,
    unless `keep_arrival` is set.

    The recency check is part of the UPDATE itself, so concurrent
    ingestions for the same trip cannot leave an older sample on top.

    Returns:
        True if the mirror was written, False if a newer sample already won
    """
    values = {
        "tracking_active": True,
        "last_latitude": latitude,
        "last_longitude": longitude,
        "last_speed": speed,
        "last_position_at": recorded_at,
    }
    if not keep_arrival:
        values["estimated_arrival"] = estimated_arrival

    stmt = update(Trip).where(
        Trip.id == trip_id,
        or_(Trip.last_position_at.is_(None), Trip.last_position_at < recorded_at)
    ).values(**values).execution_options(synchronize_session=False)

    result = await db.execute(stmt)
    return result.rowcount > 0


async def update_vehicle_mirror(
    db: AsyncSession,
    vehicle_id: int,
    latitude: float,
    longitude: float,
    recorded_at: datetime,
) -> bool:
    """Same conditional overwrite as the trip mirror, for the bus itself."""
    stmt = update(Vehicle).where(
        Vehicle.id == vehicle_id,
        or_(Vehicle.last_position_at.is_(None), Vehicle.last_position_at < recorded_at)
    ).values(
        last_latitude=latitude,
        last_longitude=longitude,
        last_position_at=recorded_at,
    ).execution_options(synchronize_session=False)

    result = await db.execute(stmt)
    return result.rowcount > 0
