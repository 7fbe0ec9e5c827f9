"""Integration tests for API endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from tcoutil.models import SystemLog
from tcoutil.readiness import readiness


async def _create_line(client: AsyncClient, **overrides) -> dict:
    payload = {"number": "12", "name": "Gare - Hopital", "vehicle_types": ["Standard"]}
    payload.update(overrides)
    response = await client.post("/api/lines", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_direction(client: AsyncClient, line_id: int, name: str = "Aller") -> dict:
    response = await client.post("/api/directions", json={"line_id": line_id, "name": name})
    assert response.status_code == 201, response.text
    return response.json()


async def _create_conductor(client: AsyncClient, employee_number: str = "E100") -> dict:
    response = await client.post(
        "/api/conductors",
        json={
            "last_name": "Martin",
            "first_name": "Lea",
            "employee_number": employee_number,
            "license": "D",
            "hired_on": "06/01/2020",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    """Test the root endpoint."""
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert "version" in data
    assert data["status"] == "operational"


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    with patch("tcoutil.main.ping_database", new=AsyncMock(return_value=None)):
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_check_reports_unreachable_database(client: AsyncClient):
    with patch("tcoutil.main.ping_database", new=AsyncMock(side_effect=OSError("refused"))):
        response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"


@pytest.mark.asyncio
async def test_today_and_server_time(client: AsyncClient):
    today = (await client.get("/api/today")).json()
    assert today["timezone"] == "Europe/Paris"
    assert len(today["date"]) == 10

    server_time = (await client.get("/api/server-time")).json()
    assert "utc" in server_time
    assert "local" in server_time


@pytest.mark.asyncio
async def test_data_routes_answer_503_until_ready(client: AsyncClient):
    readiness.reset()

    blocked = await client.get("/api/lines")
    assert blocked.status_code == 503
    assert blocked.json()["detail"] == "Database unavailable, retry shortly"

    assert (await client.get("/api/cors-test")).status_code == 200
    assert (await client.get("/api/today")).status_code == 200

    readiness.mark_ready()
    assert (await client.get("/api/lines")).status_code == 200


@pytest.mark.asyncio
async def test_vehicle_lifecycle(client: AsyncClient):
    response = await client.post(
        "/api/vehicles",
        json={
            "parc": "4521",
            "type": "Standard",
            "model": "Citaro",
            "registration": "ab-123-cd",
            "photos": '["front.jpg"]',
            "factory_options": {"usb": True},
        },
    )
    assert response.status_code == 201, response.text
    vehicle = response.json()
    assert vehicle["registration"] == "AB-123-CD"
    assert vehicle["photos"] == ["front.jpg"]
    assert vehicle["interior_state"] == 100
    assert vehicle["status"] == "Available"

    response = await client.put("/api/vehicles/4521", json={"mileage": 1200, "depot": ""})
    assert response.status_code == 200
    assert response.json()["mileage"] == 1200
    assert response.json()["model"] == "Citaro"

    response = await client.put("/api/vehicles/4521", json={"model": None})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "cannot_clear_field"

    assert (await client.delete("/api/vehicles/4521")).status_code == 200
    assert (await client.get("/api/vehicles/4521")).status_code == 404


@pytest.mark.asyncio
async def test_vehicle_requires_fields(client: AsyncClient):
    response = await client.post("/api/vehicles", json={"parc": "1"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "missing_required_field"
    assert detail["missing"] == ["type", "model", "registration"]


@pytest.mark.asyncio
async def test_conductor_partial_update(client: AsyncClient):
    conductor = await _create_conductor(client)
    assert conductor["hired_on"] == "2020-01-06"
    assert conductor["max_hours"] == 35

    response = await client.put(
        f"/api/conductors/{conductor['id']}",
        json={"phone": "0601020304", "medical_check": '{"valid_until": "2027-01-01"}'},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["phone"] == "0601020304"
    assert data["medical_check"] == {"valid_until": "2027-01-01"}
    assert data["last_name"] == "Martin"

    response = await client.put(f"/api/conductors/{conductor['id']}", json={"phone": ""})
    assert response.json()["phone"] is None


@pytest.mark.asyncio
async def test_line_operating_window_and_calendar(client: AsyncClient):
    line = await _create_line(client, operating_start="5:00", operating_end="02:00")
    assert line["operating_start"] == "05:00"
    assert line["calendar"] is None

    response = await client.put(f"/api/lines/{line['id']}", json={"operating_end": "25:00"})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_time"

    response = await client.post("/api/lines/init-calendars")
    assert response.json()["updated"] == 1

    calendar = (await client.get(f"/api/lines/{line['id']}")).json()["calendar"]
    assert calendar["monday"] is True
    assert calendar["sunday"] is False

    response = await client.post("/api/lines/init-calendars")
    assert response.json()["updated"] == 0


@pytest.mark.asyncio
async def test_create_trip_and_duplicate(client: AsyncClient):
    line = await _create_line(client, operating_start="08:00", operating_end="20:00")
    direction = await _create_direction(client, line["id"])
    payload = {
        "direction_id": direction["id"],
        "line_id": line["id"],
        "start_time": "09:00",
        "end_time": "10:00",
        "date": "2026-10-17",
    }

    first = await client.post("/api/trips", json=payload)
    assert first.status_code == 201, first.text
    assert first.json()["duplicate"] is False
    assert first.json()["line"]["number"] == "12"

    second = await client.post("/api/trips", json=payload)
    assert second.status_code == 200
    assert second.json()["duplicate"] is True
    assert second.json()["id"] == first.json()["id"]

    trips = (await client.get("/api/trips", params={"date": "17/10/2026"})).json()
    assert len(trips) == 1


@pytest.mark.asyncio
async def test_unpadded_trip_times_match_stored_trip(client: AsyncClient):
    line = await _create_line(client, operating_start="08:00", operating_end="20:00")
    direction = await _create_direction(client, line["id"])
    base = {"direction_id": direction["id"], "line_id": line["id"], "date": "2026-10-17"}

    first = await client.post("/api/trips", json={**base, "start_time": "09:00", "end_time": "10:00"})
    second = await client.post("/api/trips", json={**base, "start_time": "9:00", "end_time": "10:00"})

    assert second.status_code == 200, second.text
    assert second.json()["duplicate"] is True
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["start_time"] == "09:00"


@pytest.mark.asyncio
async def test_update_trip_times_and_status(client: AsyncClient):
    line = await _create_line(client, operating_start="08:00", operating_end="20:00")
    direction = await _create_direction(client, line["id"])
    trip = (
        await client.post(
            "/api/trips",
            json={"direction_id": direction["id"], "line_id": line["id"],
                  "start_time": "09:00", "end_time": "10:00"},
        )
    ).json()

    response = await client.put(f"/api/trips/{trip['id']}", json={"start_time": "8:30"})
    assert response.status_code == 200, response.text
    assert response.json()["start_time"] == "08:30"

    response = await client.put(f"/api/trips/{trip['id']}", json={"status": ""})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_status"

    stored = (await client.get(f"/api/trips/{trip['id']}")).json()
    assert stored["status"] == "Planned"


@pytest.mark.asyncio
async def test_create_trip_rejections(client: AsyncClient):
    line = await _create_line(client, operating_start="08:00", operating_end="20:00")
    direction = await _create_direction(client, line["id"])
    base = {"direction_id": direction["id"], "line_id": line["id"]}

    response = await client.post("/api/trips", json={**base, "start_time": "09:00", "end_time": "21:00"})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "end_after_line_closes"

    response = await client.post("/api/trips", json={"start_time": "09:00"})
    assert response.status_code == 400
    assert response.json()["detail"]["missing"] == ["direction_id", "end_time"]

    response = await client.post(
        "/api/trips", json={"direction_id": 999, "start_time": "09:00", "end_time": "10:00"}
    )
    assert response.status_code == 404

    assert (await client.get("/api/trips")).json() == []


@pytest.mark.asyncio
async def test_direction_trips_and_line_tree(client: AsyncClient):
    line = await _create_line(client)
    direction = await _create_direction(client, line["id"])
    conductor = await _create_conductor(client)
    response = await client.post(
        "/api/trips",
        json={
            "direction_id": direction["id"],
            "line_id": line["id"],
            "conductor_id": conductor["id"],
            "start_time": "06:30",
            "end_time": "07:10",
        },
    )
    assert response.status_code == 201, response.text

    trips = (await client.get(f"/api/directions/{direction['id']}/trips")).json()
    assert trips[0]["conductor"]["employee_number"] == "E100"

    lines = (await client.get("/api/lines")).json()
    assert lines[0]["directions"][0]["trips"][0]["start_time"] == "06:30"

    assert (await client.delete(f"/api/lines/{line['id']}")).status_code == 200
    assert (await client.get("/api/trips")).json() == []


@pytest.mark.asyncio
async def test_check_in_completes_trip_and_feeds_stats(client: AsyncClient):
    line = await _create_line(client)
    direction = await _create_direction(client, line["id"])
    conductor = await _create_conductor(client)
    trip = (
        await client.post(
            "/api/trips",
            json={"direction_id": direction["id"], "line_id": line["id"],
                  "start_time": "07:00", "end_time": "08:00"},
        )
    ).json()

    response = await client.post(
        "/api/check-ins",
        json={
            "trip_id": trip["id"],
            "conductor_id": conductor["id"],
            "validated_by": "Regulateur",
            "vehicle_type": "Standard",
            "license_checked": True,
        },
    )
    assert response.status_code == 201, response.text
    assert response.json()["trip"]["status"] == "Completed"

    stats = (await client.get("/api/check-ins/stats/daily")).json()
    assert stats["total_trips"] == 1
    assert stats["total_check_ins"] == 1
    assert stats["validation_rate"] == 100
    assert stats["license_check_rate"] == 100
    assert stats["tachograph_check_rate"] == 0
    assert stats["hourly_distribution"] == {"07": {"total": 1, "validated": 1}}
    assert stats["line_stats"] == [{"number": "12", "check_ins": 1}]

    listed = (await client.get("/api/check-ins", params={"conductor_id": conductor["id"]})).json()
    assert len(listed) == 1


@pytest.mark.asyncio
async def test_check_in_for_unknown_trip(client: AsyncClient):
    conductor = await _create_conductor(client)
    response = await client.post(
        "/api/check-ins",
        json={"trip_id": 404, "conductor_id": conductor["id"], "validated_by": "Chef"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_purge_trips(client: AsyncClient):
    line = await _create_line(client)
    direction = await _create_direction(client, line["id"])
    for start, end in (("08:00", "09:00"), ("09:00", "10:00")):
        await client.post(
            "/api/trips",
            json={"direction_id": direction["id"], "start_time": start, "end_time": end},
        )

    response = await client.delete("/api/trips")
    assert response.json()["count"] == 2
    assert (await client.get("/api/trips")).json() == []


@pytest.mark.asyncio
async def test_itinerary_stops_are_appended_in_order(client: AsyncClient):
    line = await _create_line(client)
    response = await client.post("/api/itineraries", json={"line_id": line["id"], "name": "Centre"})
    assert response.status_code == 201, response.text
    itinerary = response.json()

    for name in ("Gare", "Mairie", "Hopital"):
        await client.post("/api/stops", json={"itinerary_id": itinerary["id"], "name": name})

    stops = (await client.get(f"/api/stops/itinerary/{itinerary['id']}")).json()
    assert [(stop["name"], stop["position"]) for stop in stops] == [
        ("Gare", 1), ("Mairie", 2), ("Hopital", 3),
    ]

    itineraries = (await client.get(f"/api/itineraries/line/{line['id']}")).json()
    assert [stop["name"] for stop in itineraries[0]["stops"]] == ["Gare", "Mairie", "Hopital"]


@pytest.mark.asyncio
async def test_saeiv_crud(client: AsyncClient):
    response = await client.post("/api/saeivs", json={"number": "S-01", "label": "Pupitre", "type": "Console"})
    assert response.status_code == 201
    device = response.json()
    assert device["status"] == "Active"

    response = await client.put(f"/api/saeivs/{device['id']}", json={"status": "Maintenance"})
    assert response.json()["status"] == "Maintenance"

    assert [item["number"] for item in (await client.get("/api/saeivs")).json()] == ["S-01"]


@pytest.mark.asyncio
async def test_system_diagnostic(client: AsyncClient):
    line = await _create_line(client)
    direction = await _create_direction(client, line["id"])
    await client.post(
        "/api/trips",
        json={"direction_id": direction["id"], "start_time": "08:00",
              "end_time": "09:00", "date": "2026-10-17"},
    )

    data = (await client.get("/api/system/diagnostic")).json()
    assert data["total_trips"] == 1
    assert data["dates"] == [{"date": "2026-10-17", "total": 1, "statuses": {"Planned": 1}}]


@pytest.mark.asyncio
async def test_system_logs_filters_by_level(client: AsyncClient, test_db):
    test_db.add_all([
        SystemLog(service="api", level="ERROR", logger_name="tcoutil.api", message="boom"),
        SystemLog(service="api", level="WARNING", logger_name="tcoutil.readiness", message="slow"),
    ])
    await test_db.commit()

    data = (await client.get("/api/system/logs", params={"level": "error"})).json()

    assert [item["message"] for item in data["items"]] == ["boom"]
