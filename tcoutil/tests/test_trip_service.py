"""Tests for trip creation, de-duplication and updates."""

import logging
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tcoutil.models import Conductor, Direction, Line, Trip
from tcoutil.services.errors import MissingFieldsError, RecordNotFoundError, ValidationError
from tcoutil.services.trip_service import TripService
from tcoutil.services.trip_window import TripWindowError
from tcoutil.services.updates import FieldUpdate


async def _seed_line(db: AsyncSession, start="05:00", end="23:00"):
    line = Line(number="12", name="Gare - Hopital", vehicle_types=["Standard"],
                operating_start=start, operating_end=end)
    db.add(line)
    await db.flush()
    direction = Direction(line_id=line.id, name="Aller", direction="Hopital")
    db.add(direction)
    await db.flush()
    return line, direction


async def _trip_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Trip))).scalar_one()


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["direction_id", "start_time", "end_time"])
async def test_missing_field_fails_before_any_query(missing):
    db = AsyncMock()
    payload = {"direction_id": 1, "start_time": "08:00", "end_time": "09:00"}
    payload[missing] = None

    with pytest.raises(MissingFieldsError) as excinfo:
        await TripService(db).create_trip(payload)

    assert excinfo.value.missing == [missing]
    assert excinfo.value.code == "missing_required_field"
    db.get.assert_not_awaited()
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_fields_are_all_listed():
    with pytest.raises(MissingFieldsError) as excinfo:
        await TripService(AsyncMock()).create_trip({"start_time": " "})
    assert excinfo.value.missing == ["direction_id", "start_time", "end_time"]


@pytest.mark.asyncio
async def test_create_trip_defaults(test_db: AsyncSession):
    line, direction = await _seed_line(test_db)

    created = await TripService(test_db).create_trip({
        "direction_id": direction.id,
        "line_id": line.id,
        "start_time": "08:00",
        "end_time": "09:15",
        "date": "17/10/2026",
    })

    assert created.duplicate is False
    assert created.trip.id is not None
    assert created.trip.date == date(2026, 10, 17)
    assert created.trip.status == "Planned"
    assert created.trip.direction.name == "Aller"
    assert created.trip.line.number == "12"


@pytest.mark.asyncio
async def test_identical_trip_is_returned_as_duplicate(test_db: AsyncSession):
    line, direction = await _seed_line(test_db)
    service = TripService(test_db)
    payload = {
        "direction_id": direction.id,
        "line_id": line.id,
        "start_time": "08:00",
        "end_time": "09:00",
        "date": "2026-10-17",
    }

    first = await service.create_trip(payload)
    second = await service.create_trip(payload)

    assert second.duplicate is True
    assert second.trip.id == first.trip.id
    assert await _trip_count(test_db) == 1


@pytest.mark.asyncio
async def test_unpadded_times_are_stored_padded_and_deduplicated(test_db: AsyncSession):
    line, direction = await _seed_line(test_db)
    service = TripService(test_db)
    payload = {"direction_id": direction.id, "line_id": line.id, "date": "2026-10-17"}

    first = await service.create_trip({**payload, "start_time": "9:00", "end_time": "10:00"})
    second = await service.create_trip({**payload, "start_time": "09:00", "end_time": "10:00"})

    assert first.trip.start_time == "09:00"
    assert second.duplicate is True
    assert second.trip.id == first.trip.id
    assert await _trip_count(test_db) == 1


@pytest.mark.asyncio
async def test_concurrent_insert_returns_the_stored_trip(test_db: AsyncSession):
    line, direction = await _seed_line(test_db)
    winner = Trip(direction_id=direction.id, line_id=line.id, date=date(2026, 10, 17),
                  start_time="08:00", end_time="09:00", status="Planned")
    test_db.add(winner)
    await test_db.commit()
    winner_id = winner.id
    payload = {
        "direction_id": direction.id,
        "line_id": line.id,
        "start_time": "08:00",
        "end_time": "09:00",
        "date": "2026-10-17",
    }

    service = TripService(test_db)
    real_find = service._find_identical
    calls = []

    async def find_after_first_miss(*args):
        calls.append(args)
        if len(calls) == 1:
            return None
        return await real_find(*args)

    with patch.object(service, "_find_identical", new=find_after_first_miss):
        created = await service.create_trip(payload)

    assert len(calls) == 2
    assert created.duplicate is True
    assert created.trip.id == winner_id
    assert await _trip_count(test_db) == 1


@pytest.mark.asyncio
async def test_created_trip_is_logged_with_its_ids(test_db: AsyncSession, caplog):
    line, direction = await _seed_line(test_db)
    caplog.set_level(logging.INFO, logger="tcoutil.services.trip_service")

    created = await TripService(test_db).create_trip({
        "direction_id": direction.id, "line_id": line.id,
        "start_time": "08:00", "end_time": "09:00",
    })

    record = next(r for r in caplog.records if r.getMessage().startswith(f"Trip {created.trip.id} created"))
    assert record.trip_id == created.trip.id
    assert record.direction_id == direction.id
    assert record.line_id == line.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "change",
    [{"start_time": "08:05"}, {"end_time": "09:05"}, {"date": "2026-10-18"}],
)
async def test_any_key_difference_creates_new_trip(test_db: AsyncSession, change):
    line, direction = await _seed_line(test_db)
    service = TripService(test_db)
    payload = {
        "direction_id": direction.id,
        "line_id": line.id,
        "start_time": "08:00",
        "end_time": "09:00",
        "date": "2026-10-17",
    }
    await service.create_trip(payload)

    created = await service.create_trip({**payload, **change})

    assert created.duplicate is False
    assert await _trip_count(test_db) == 2


@pytest.mark.asyncio
async def test_other_direction_creates_new_trip(test_db: AsyncSession):
    line, direction = await _seed_line(test_db)
    other = Direction(line_id=line.id, name="Retour", position=2)
    test_db.add(other)
    await test_db.flush()
    service = TripService(test_db)
    payload = {"line_id": line.id, "start_time": "08:00", "end_time": "09:00", "date": "2026-10-17"}

    await service.create_trip({**payload, "direction_id": direction.id})
    created = await service.create_trip({**payload, "direction_id": other.id})

    assert created.duplicate is False
    assert await _trip_count(test_db) == 2


@pytest.mark.asyncio
async def test_window_violation_writes_nothing(test_db: AsyncSession):
    line, direction = await _seed_line(test_db, start="08:00", end="20:00")

    with pytest.raises(TripWindowError) as excinfo:
        await TripService(test_db).create_trip({
            "direction_id": direction.id,
            "line_id": line.id,
            "start_time": "07:00",
            "end_time": "09:00",
        })

    assert excinfo.value.code == "start_before_line_opens"
    assert await _trip_count(test_db) == 0


@pytest.mark.asyncio
async def test_unknown_line_skips_window_check(test_db: AsyncSession):
    _, direction = await _seed_line(test_db, start="08:00", end="20:00")

    created = await TripService(test_db).create_trip({
        "direction_id": direction.id,
        "line_id": 999,
        "start_time": "06:00",
        "end_time": "07:00",
    })

    assert created.duplicate is False


@pytest.mark.asyncio
async def test_unknown_direction_is_not_found(test_db: AsyncSession):
    with pytest.raises(RecordNotFoundError):
        await TripService(test_db).create_trip(
            {"direction_id": 42, "start_time": "08:00", "end_time": "09:00"}
        )


@pytest.mark.asyncio
async def test_invalid_status_is_rejected(test_db: AsyncSession):
    _, direction = await _seed_line(test_db)

    with pytest.raises(ValidationError) as excinfo:
        await TripService(test_db).create_trip({
            "direction_id": direction.id,
            "start_time": "08:00",
            "end_time": "09:00",
            "status": "Lost",
        })

    assert excinfo.value.code == "invalid_status"


@pytest.mark.asyncio
async def test_update_revalidates_times(test_db: AsyncSession):
    line, direction = await _seed_line(test_db, start="08:00", end="20:00")
    service = TripService(test_db)
    created = await service.create_trip({
        "direction_id": direction.id, "line_id": line.id,
        "start_time": "09:00", "end_time": "10:00",
    })

    with pytest.raises(TripWindowError) as excinfo:
        await service.update_trip(created.trip.id, {"end_time": FieldUpdate.set_to("21:00")})
    assert excinfo.value.code == "end_after_line_closes"

    updated = await service.update_trip(created.trip.id, {"end_time": FieldUpdate.set_to("11:00")})
    assert updated.end_time == "11:00"
    assert updated.start_time == "09:00"


@pytest.mark.asyncio
async def test_update_assigns_and_clears_conductor(test_db: AsyncSession):
    _, direction = await _seed_line(test_db)
    conductor = Conductor(last_name="Martin", first_name="Lea", employee_number="E100",
                          license="D", hired_on=date(2020, 1, 6))
    test_db.add(conductor)
    await test_db.flush()
    service = TripService(test_db)
    created = await service.create_trip(
        {"direction_id": direction.id, "start_time": "09:00", "end_time": "10:00"}
    )

    assigned = await service.update_trip(
        created.trip.id, {"conductor_id": FieldUpdate.set_to(conductor.id)}
    )
    assert assigned.conductor.last_name == "Martin"

    cleared = await service.update_trip(created.trip.id, {"conductor_id": FieldUpdate.clear()})
    assert cleared.conductor_id is None

    with pytest.raises(RecordNotFoundError):
        await service.update_trip(created.trip.id, {"conductor_id": FieldUpdate.set_to(999)})


@pytest.mark.asyncio
async def test_purge_removes_every_trip(test_db: AsyncSession):
    _, direction = await _seed_line(test_db)
    service = TripService(test_db)
    for start, end in (("08:00", "09:00"), ("10:00", "11:00")):
        await service.create_trip({"direction_id": direction.id, "start_time": start, "end_time": end})

    assert await service.purge_trips() == 2
    assert await _trip_count(test_db) == 0


@pytest.mark.asyncio
async def test_update_pads_times_and_rejects_blank_status(test_db: AsyncSession):
    _, direction = await _seed_line(test_db)
    service = TripService(test_db)
    created = await service.create_trip(
        {"direction_id": direction.id, "start_time": "09:00", "end_time": "10:00"}
    )

    updated = await service.update_trip(created.trip.id, {"start_time": FieldUpdate.set_to("8:30")})
    assert updated.start_time == "08:30"

    with pytest.raises(ValidationError) as excinfo:
        await service.update_trip(created.trip.id, {"status": FieldUpdate.set_to("")})
    assert excinfo.value.code == "invalid_status"
    assert (await service.get_trip(created.trip.id)).status == "Planned"
