"""
Live tracking schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from tracking_backend.app.domain.tracking.tracking_status import TrackingStatus


class PositionUpdate(BaseModel):
    """Schema for a GPS position pushed by the bus."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: Optional[float] = None
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy radius in meters")
    heading: Optional[float] = Field(None, ge=0, le=360)
    speed: Optional[float] = Field(None, ge=0, description="Device speed in km/h")
    recorded_at: datetime


class PositionUpdateResponse(BaseModel):
    """Response after recording a position."""
    trip_id: int
    position_id: int
    recorded: bool
    estimated_arrival: Optional[datetime]


class OsmAndParams(BaseModel):
    """Query parameters sent by the OsmAnd online tracking plugin."""
    token: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    timestamp: Optional[float] = None  # Unix epoch seconds
    hdop: Optional[float] = Field(None, ge=0)
    altitude: Optional[float] = None
    speed: Optional[float] = Field(None, ge=0)  # m/s
    bearing: Optional[float] = Field(None, ge=0, le=360)


class CurrentPosition(BaseModel):
    latitude: float
    longitude: float
    speed: Optional[float]
    updated_at: Optional[datetime]


class RoutePlace(BaseModel):
    """A named place on the route; coordinates are null when not geocoded."""
    name: str
    latitude: Optional[float]
    longitude: Optional[float]


class RouteInfo(BaseModel):
    origin: RoutePlace
    destination: RoutePlace
    stops: List[RoutePlace] = []


class TrailPoint(BaseModel):
    """GPS trail point."""
    latitude: float
    longitude: float
    speed: Optional[float]
    heading: Optional[float]
    recorded_at: datetime

    class Config:
        from_attributes = True


class VehicleSummary(BaseModel):
    plate_number: str
    side_number: Optional[str]
    make: Optional[str]
    model: Optional[str]

    class Config:
        from_attributes = True


class TripTrackingResponse(BaseModel):
    """Live tracking view of a trip."""
    trip_id: int
    status: str
    departure_time: datetime
    estimated_duration: Optional[int]
    vehicle: Optional[VehicleSummary]
    tracking: TrackingStatus
    current_position: Optional[CurrentPosition]
    estimated_arrival: Optional[datetime]
    route: RouteInfo
    history: List[TrailPoint] = []


class FleetTrip(BaseModel):
    trip_id: int
    origin: str
    destination: str
    departure_time: datetime
    estimated_duration: Optional[int]
    vehicle_id: Optional[int]
    tracking: TrackingStatus
    position: Optional[CurrentPosition]
    estimated_arrival: Optional[datetime]


class FleetResponse(BaseModel):
    """Fleet map overview of departed trips."""
    fleet: List[FleetTrip]
    total_departed: int
    total_tracking: int


class TrackingTokenResponse(BaseModel):
    """OsmAnd tracking token for a trip and the URL to configure in the app."""
    trip_id: int
    token: str
    tracking_url: str = Field(..., description="OsmAnd URL template with {0}-{6} placeholders")
    existing: bool
