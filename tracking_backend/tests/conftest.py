"""
Centralized Test Configuration.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from tracking_backend.app.main import app
from tracking_backend.app.db.session import get_db, Base
from tracking_backend.app.models.city_coordinate import CityCoordinate
from tracking_backend.app.models.trip import Trip
from tracking_backend.app.models.trip_enums import TripStatus
from tracking_backend.app.models.vehicle import Vehicle

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Straight north-south route: Addis (origin) -> Kombolcha (stop) -> Weldiya (destination)
ORIGIN = ("Addis Ababa", 9.0, 38.7)
STOP = ("Kombolcha", 10.0, 38.7)
DESTINATION = ("Weldiya", 11.0, 38.7)
TRACKING_TOKEN = "osmand-test-token"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def apply_overrides(session_factory):
    """Point the app's get_db dependency at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def cities(db_session):
    """Geocoded origin, stop and destination, plus a city without coordinates."""
    for name, lat, lon in (ORIGIN, STOP, DESTINATION):
        db_session.add(CityCoordinate(name=name, latitude=lat, longitude=lon))
    db_session.add(CityCoordinate(name="Mekele", latitude=None, longitude=None))
    await db_session.commit()


@pytest.fixture
async def vehicle(db_session):
    bus = Vehicle(plate_number="AA-3-12345", side_number="B-017", make="Yutong", model="ZK6122")
    db_session.add(bus)
    await db_session.commit()
    await db_session.refresh(bus)
    return bus


@pytest.fixture
async def departed_trip(db_session, cities, vehicle):
    """A departed trip through one intermediate stop with a bus assigned."""
    trip = Trip(
        origin=ORIGIN[0],
        destination=DESTINATION[0],
        intermediate_stops=json.dumps([STOP[0]]),
        departure_time=datetime.now(timezone.utc) - timedelta(hours=2),
        estimated_duration=300,
        status=TripStatus.DEPARTED,
        vehicle_id=vehicle.id,
        tracking_token=TRACKING_TOKEN,
    )
    db_session.add(trip)
    await db_session.commit()
    await db_session.refresh(trip)
    return trip
