"""
Live tracking API tests.

Position push, trip tracking view, fleet overview and the OsmAnd endpoint.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from tracking_backend.app.models.trip import Trip
from tracking_backend.app.models.trip_enums import TripStatus
from tracking_backend.app.models.trip_position import TripPosition
from tracking_backend.app.services import tracking_store


def position_body(lat, recorded_at, speed=55.0, lon=38.7):
    return {
        "latitude": lat,
        "longitude": lon,
        "speed": speed,
        "heading": 0.0,
        "accuracy": 8.0,
        "recorded_at": recorded_at.isoformat(),
    }


async def count_positions(db, trip_id):
    result = await db.execute(select(func.count(TripPosition.id)).where(TripPosition.trip_id == trip_id))
    return result.scalar_one()


@pytest.fixture
async def scheduled_trip(db_session, cities):
    trip = Trip(
        origin="Addis Ababa",
        destination="Weldiya",
        departure_time=datetime.now(timezone.utc) + timedelta(hours=3),
        status=TripStatus.SCHEDULED,
        tracking_token="scheduled-token",
    )
    db_session.add(trip)
    await db_session.commit()
    await db_session.refresh(trip)
    return trip


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_record_position(client, departed_trip):
    """Position is stored and an arrival estimate returned."""
    now = datetime.now(timezone.utc)
    response = await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(10.2, now)
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["trip_id"] == departed_trip.id
    assert data["recorded"] is True
    assert data["position_id"] > 0
    assert data["estimated_arrival"] is not None


@pytest.mark.asyncio
async def test_record_position_unknown_trip(client, cities):
    response = await client.post(
        "/v1/tracking/trips/9999/positions",
        json=position_body(10.2, datetime.now(timezone.utc))
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_record_position_requires_departed_trip(client, scheduled_trip):
    response = await client.post(
        f"/v1/tracking/trips/{scheduled_trip.id}/positions",
        json=position_body(9.1, datetime.now(timezone.utc))
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_TRACK_001"
    assert body["details"]["status"] == "SCHEDULED"


@pytest.mark.asyncio
async def test_record_position_out_of_range(client, departed_trip):
    response = await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(95.0, datetime.now(timezone.utc))
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_record_position_too_old(client, departed_trip, db_session):
    response = await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(10.2, datetime.now(timezone.utc) - timedelta(days=1))
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_TRACK_002"
    assert await count_positions(db_session, departed_trip.id) == 0


@pytest.mark.asyncio
async def test_record_position_storage_failure(client, departed_trip, mocker):
    mocker.patch.object(tracking_store, "insert_position", side_effect=SQLAlchemyError("down"))

    response = await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(10.2, datetime.now(timezone.utc))
    )
    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_STORAGE_001"


@pytest.mark.asyncio
async def test_trip_tracking_before_first_position(client, departed_trip, vehicle):
    response = await client.get(f"/v1/tracking/trips/{departed_trip.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "DEPARTED"
    assert data["tracking"] == "off"
    assert data["current_position"] is None
    assert data["estimated_arrival"] is None
    assert data["vehicle"]["plate_number"] == vehicle.plate_number
    assert data["route"]["origin"] == {"name": "Addis Ababa", "latitude": 9.0, "longitude": 38.7}
    assert data["route"]["destination"]["latitude"] == 11.0
    assert [stop["name"] for stop in data["route"]["stops"]] == ["Kombolcha"]
    assert data["history"] == []


@pytest.mark.asyncio
async def test_trip_tracking_live_with_history(client, departed_trip):
    """Live view after a few positions; parked jitter is compacted away."""
    now = datetime.now(timezone.utc)
    samples = [
        (10.2, now - timedelta(seconds=90)),
        (10.20001, now - timedelta(seconds=60)),  # ~1 m of jitter
        (10.21, now - timedelta(seconds=30)),
        (10.22, now - timedelta(seconds=5)),
    ]
    for lat, recorded_at in samples:
        response = await client.post(
            f"/v1/tracking/trips/{departed_trip.id}/positions",
            json=position_body(lat, recorded_at)
        )
        assert response.status_code == 200

    # TEST 1: Without history flag the trail is omitted
    response = await client.get(f"/v1/tracking/trips/{departed_trip.id}")
    data = response.json()
    assert data["tracking"] == "live"
    assert data["current_position"]["latitude"] == 10.22
    assert data["estimated_arrival"] is not None
    assert data["history"] == []

    # TEST 2: History is ascending and compacted
    response = await client.get(f"/v1/tracking/trips/{departed_trip.id}", params={"history": "true"})
    history = response.json()["history"]
    assert [point["latitude"] for point in history] == [10.2, 10.21, 10.22]

    # TEST 3: Limit keeps only the most recent samples
    response = await client.get(
        f"/v1/tracking/trips/{departed_trip.id}", params={"history": "true", "limit": 2}
    )
    assert [point["latitude"] for point in response.json()["history"]] == [10.21, 10.22]


@pytest.mark.asyncio
async def test_trip_tracking_stale(client, departed_trip):
    recorded_at = datetime.now(timezone.utc) - timedelta(minutes=10)
    await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(10.2, recorded_at)
    )

    response = await client.get(f"/v1/tracking/trips/{departed_trip.id}")
    assert response.json()["tracking"] == "stale"


@pytest.mark.asyncio
async def test_trip_tracking_unknown_trip(client):
    response = await client.get("/v1/tracking/trips/424242")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_fleet_overview(client, departed_trip, scheduled_trip):
    await client.post(
        f"/v1/tracking/trips/{departed_trip.id}/positions",
        json=position_body(10.2, datetime.now(timezone.utc))
    )

    response = await client.get("/v1/tracking/fleet")

    assert response.status_code == 200
    data = response.json()
    assert data["total_departed"] == 1
    assert data["total_tracking"] == 1
    item = data["fleet"][0]
    assert item["trip_id"] == departed_trip.id
    assert item["tracking"] == "live"
    assert item["position"]["latitude"] == 10.2
    assert item["vehicle_id"] == departed_trip.vehicle_id


@pytest.mark.asyncio
async def test_correlation_id_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "trace-abc"})
    assert response.headers["X-Correlation-ID"] == "trace-abc"
    assert "X-Process-Time" in response.headers


# OsmAnd background tracking

def osmand_params(token, lat=10.2, timestamp=None, **extra):
    params = {
        "token": token,
        "lat": str(lat),
        "lon": "38.7",
        "timestamp": str(int(timestamp or datetime.now(timezone.utc).timestamp())),
    }
    params.update({key: str(value) for key, value in extra.items()})
    return params


@pytest.mark.asyncio
async def test_osmand_records_position(client, departed_trip, db_session):
    response = await client.get(
        "/v1/tracking/osmand",
        params=osmand_params(departed_trip.tracking_token, speed=10, hdop=2, bearing=180)
    )

    assert response.status_code == 200
    assert response.text == "OK"

    result = await db_session.execute(select(TripPosition).where(TripPosition.trip_id == departed_trip.id))
    stored = result.scalar_one()
    assert stored.speed == pytest.approx(36.0)  # 10 m/s
    assert stored.accuracy == pytest.approx(10.0)  # hdop 2 x 5 m
    assert stored.heading == 180.0


@pytest.mark.asyncio
async def test_osmand_deduplicates_close_samples(client, departed_trip, db_session):
    timestamp = datetime.now(timezone.utc).timestamp()
    first = await client.get("/v1/tracking/osmand", params=osmand_params(departed_trip.tracking_token, timestamp=timestamp))
    repeat = await client.get(
        "/v1/tracking/osmand",
        params=osmand_params(departed_trip.tracking_token, lat=10.21, timestamp=timestamp + 3)
    )

    assert first.text == "OK"
    assert repeat.text == "OK"
    assert await count_positions(db_session, departed_trip.id) == 1


@pytest.mark.asyncio
async def test_osmand_invalid_token(client, departed_trip):
    response = await client.get("/v1/tracking/osmand", params=osmand_params("no-such-token"))
    assert response.status_code == 200
    assert response.text == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_osmand_trip_not_active(client, scheduled_trip):
    response = await client.get("/v1/tracking/osmand", params=osmand_params(scheduled_trip.tracking_token))
    assert response.status_code == 200
    assert response.text == "TRIP_NOT_ACTIVE"


@pytest.mark.asyncio
async def test_osmand_invalid_params(client, departed_trip):
    # TEST 1: Not a number
    params = osmand_params(departed_trip.tracking_token)
    params["lat"] = "north"
    response = await client.get("/v1/tracking/osmand", params=params)
    assert response.status_code == 200
    assert response.text == "INVALID_PARAMS"

    # TEST 2: Missing token
    response = await client.get("/v1/tracking/osmand", params={"lat": "10.2", "lon": "38.7"})
    assert response.text == "INVALID_PARAMS"

    # TEST 3: Buffered sample older than the accepted window
    old = (datetime.now(timezone.utc) - timedelta(days=2)).timestamp()
    response = await client.get("/v1/tracking/osmand", params=osmand_params(departed_trip.tracking_token, timestamp=old))
    assert response.text == "INVALID_PARAMS"


@pytest.mark.asyncio
async def test_osmand_unexpected_failure_reports_error(client, departed_trip, mocker):
    mocker.patch.object(tracking_store, "insert_position", side_effect=SQLAlchemyError("down"))

    response = await client.get("/v1/tracking/osmand", params=osmand_params(departed_trip.tracking_token))
    assert response.status_code == 200
    assert response.text == "ERROR"


@pytest.mark.asyncio
async def test_issue_tracking_token(client, departed_trip, db_session):
    """A departed trip without a token gets a fresh one that OsmAnd can use."""
    departed_trip.tracking_token = None
    await db_session.commit()

    # TEST 1: New 256-bit token and the URL template for the app
    response = await client.post(f"/v1/tracking/trips/{departed_trip.id}/token")
    assert response.status_code == 200
    data = response.json()
    assert data["trip_id"] == departed_trip.id
    assert data["existing"] is False
    assert len(data["token"]) == 64
    assert data["tracking_url"] == (
        f"http://test/v1/tracking/osmand?token={data['token']}"
        "&lat={0}&lon={1}&timestamp={2}&hdop={3}&altitude={4}&speed={5}&bearing={6}"
    )

    # TEST 2: Second call returns the same token
    again = await client.post(f"/v1/tracking/trips/{departed_trip.id}/token")
    assert again.status_code == 200
    assert again.json()["token"] == data["token"]
    assert again.json()["existing"] is True

    # TEST 3: The issued token authenticates OsmAnd uploads
    response = await client.get("/v1/tracking/osmand", params=osmand_params(data["token"]))
    assert response.text == "OK"
    assert await count_positions(db_session, departed_trip.id) == 1


@pytest.mark.asyncio
async def test_issue_tracking_token_keeps_existing(client, departed_trip):
    response = await client.post(f"/v1/tracking/trips/{departed_trip.id}/token")
    assert response.status_code == 200
    assert response.json()["token"] == departed_trip.tracking_token
    assert response.json()["existing"] is True


@pytest.mark.asyncio
async def test_issue_tracking_token_requires_departed_trip(client, scheduled_trip):
    response = await client.post(f"/v1/tracking/trips/{scheduled_trip.id}/token")
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_TRACK_001"


@pytest.mark.asyncio
async def test_issue_tracking_token_unknown_trip(client):
    response = await client.post("/v1/tracking/trips/424242/token")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_routing_errors_use_error_format(client):
    # TEST 1: Unknown path
    response = await client.get("/v1/no-such-route")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND"

    # TEST 2: Wrong method keeps the Allow header
    response = await client.delete("/health")
    assert response.status_code == 405
    assert response.json()["error_code"] == "ERR_METHOD_NOT_ALLOWED"
    assert "GET" in response.headers["allow"]
