"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from tracking_backend.app.api.v1.endpoints import tracking, osmand

router = APIRouter()

# Position push and live tracking views
router.include_router(tracking.router)

# Background GPS from the OsmAnd plugin
router.include_router(osmand.router)
