"""
Live Bus Tracking API Endpoints.

Buses push GPS positions; passengers and operators read the live view.
"""

from fastapi import APIRouter, Depends, Path, Body, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from tracking_backend.app.db.session import get_db
from tracking_backend.app.models.trip_enums import TripStatus
from tracking_backend.app.schemas.tracking import (
    PositionUpdate, PositionUpdateResponse, TripTrackingResponse, FleetResponse
)
from tracking_backend.app.core.exceptions import ResourceNotFoundError, TripNotTrackableError
from tracking_backend.app.services import tracking_store
from tracking_backend.app.services.position_ingestor import PositionIngestor, PositionInput
from tracking_backend.app.services.tracking_view import TrackingViewService

router = APIRouter(prefix="/tracking", tags=["Live Tracking"])


@router.post("/trips/{trip_id}/positions", response_model=PositionUpdateResponse)
async def record_position(
    trip_id: int = Path(..., description="Trip ID"),
    position: PositionUpdate = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a GPS position for a departed trip.

    The sample is always appended to the trip history. The estimated
    arrival and the latest-position mirror are refreshed on a best-effort
    basis.
    """
    trip = await tracking_store.get_trip(db, trip_id)
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)

    if trip.status != TripStatus.DEPARTED:
        raise TripNotTrackableError(trip.id, trip.status.value)

    result = await PositionIngestor.ingest(
        db,
        PositionInput.for_trip(trip, **position.model_dump())
    )

    return PositionUpdateResponse(
        trip_id=trip_id,
        position_id=result.position_id,
        recorded=True,
        estimated_arrival=result.estimated_arrival
    )


@router.get("/trips/{trip_id}", response_model=TripTrackingResponse)
async def get_trip_tracking(
    trip_id: int = Path(..., description="Trip ID"),
    history: bool = Query(False, description="Include the compacted GPS trail"),
    limit: Optional[int] = Query(None, ge=1, description="Recent samples to consider for the trail"),
    db: AsyncSession = Depends(get_db)
):
    """
    Live tracking view of a trip.

    Tracking is "live" for a recent position, "stale" once updates stop
    arriving and "off" before the first position.
    """
    view = await TrackingViewService.get_trip_tracking(
        db, trip_id, include_history=history, history_limit=limit
    )
    return TripTrackingResponse(**view)


@router.get("/fleet", response_model=FleetResponse)
async def get_fleet(db: AsyncSession = Depends(get_db)):
    """Positions and arrival estimates for every departed trip."""
    return FleetResponse(**await TrackingViewService.get_fleet(db))
