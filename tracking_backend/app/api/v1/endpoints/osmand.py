"""
OsmAnd Background Tracking Endpoint.

The OsmAnd "Online GPS Tracking" plugin is configured with:

    /v1/tracking/osmand?token=XXX&lat={0}&lon={1}&timestamp={2}&hdop={3}&altitude={4}&speed={5}&bearing={6}

The plugin stops retrying on any non-200 answer, so every outcome is
reported as HTTP 200 with a plain-text status word.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_backend.app.core.config import settings
from tracking_backend.app.core.exceptions import InvalidPositionError, ResourceNotFoundError, TripNotTrackableError
from tracking_backend.app.db.session import get_db
from tracking_backend.app.models.trip_enums import TripStatus
from tracking_backend.app.schemas.tracking import OsmAndParams, TrackingTokenResponse
from tracking_backend.app.services import tracking_store
from tracking_backend.app.services.position_ingestor import PositionIngestor, PositionInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking", tags=["Live Tracking - OsmAnd"])

MPS_TO_KMH = 3.6

# OsmAnd substitutes lat, lon, timestamp, hdop, altitude, speed, bearing
OSMAND_PLACEHOLDERS = "&lat={0}&lon={1}&timestamp={2}&hdop={3}&altitude={4}&speed={5}&bearing={6}"


@router.get("/osmand", response_class=PlainTextResponse)
async def osmand_position(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Record a position sent by OsmAnd, authenticated by the trip's tracking token.

    Returns one of OK, INVALID_PARAMS, INVALID_TOKEN, TRIP_NOT_ACTIVE, ERROR.
    """
    try:
        params = OsmAndParams(**request.query_params)
        if params.timestamp is not None:
            recorded_at = datetime.fromtimestamp(params.timestamp, tz=timezone.utc)
        else:
            recorded_at = datetime.now(timezone.utc)
    except (ValidationError, ValueError, OverflowError, OSError):
        return PlainTextResponse("INVALID_PARAMS")

    try:
        trip = await tracking_store.get_trip_by_token(db, params.token)
        if not trip:
            return PlainTextResponse("INVALID_TOKEN")

        if trip.status != TripStatus.DEPARTED:
            return PlainTextResponse("TRIP_NOT_ACTIVE")

        # Skip duplicates the plugin re-sends after a flaky upload
        window_start = recorded_at - timedelta(seconds=settings.osmand_dedupe_seconds)
        if await tracking_store.has_position_since(db, trip.id, window_start):
            return PlainTextResponse("OK")

        await PositionIngestor.ingest(
            db,
            PositionInput.for_trip(
                trip,
                latitude=params.lat,
                longitude=params.lon,
                recorded_at=recorded_at,
                altitude=params.altitude,
                accuracy=params.hdop * settings.osmand_hdop_meters if params.hdop is not None else None,
                heading=params.bearing,
                speed=params.speed * MPS_TO_KMH if params.speed is not None else None,
            )
        )
        return PlainTextResponse("OK")

    except InvalidPositionError as e:
        logger.info("Rejected OsmAnd sample: %s", e.message)
        return PlainTextResponse("INVALID_PARAMS")
    except Exception:
        logger.error("OsmAnd tracking update failed", exc_info=True)
        return PlainTextResponse("ERROR")


@router.post("/trips/{trip_id}/token", response_model=TrackingTokenResponse)
async def issue_tracking_token(
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue the OsmAnd tracking token for a departed trip.

    Idempotent: a trip that already has a token gets it back with
    `existing` set.
    """
    trip = await tracking_store.get_trip(db, trip_id)
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)

    if trip.status != TripStatus.DEPARTED:
        raise TripNotTrackableError(trip.id, trip.status.value)

    if trip.tracking_token:
        token, existing = trip.tracking_token, True
    else:
        token, existing = await tracking_store.assign_tracking_token(db, trip_id)

    tracking_url = f"{request.url_for('osmand_position')}?token={token}{OSMAND_PLACEHOLDERS}"
    return TrackingTokenResponse(trip_id=trip_id, token=token, tracking_url=tracking_url, existing=existing)
