"""Tests for database models."""

import pytest
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tcoutil.models import CheckIn, Conductor, Direction, Itinerary, Line, Stop, Trip, Vehicle


async def _line_with_direction(test_db: AsyncSession):
    line = Line(number="12", name="Gare - Hopital", vehicle_types=["Standard"])
    test_db.add(line)
    await test_db.commit()

    direction = Direction(line_id=line.id, name="Aller")
    test_db.add(direction)
    await test_db.commit()
    return line, direction


@pytest.mark.asyncio
async def test_create_line(test_db: AsyncSession):
    """Test creating a line model."""
    line = Line(number="12", name="Gare - Hopital")

    test_db.add(line)
    await test_db.commit()
    await test_db.refresh(line)

    assert line.id is not None
    assert line.status == "Active"
    assert line.vehicle_types == []
    assert line.created_at is not None
    assert not line.has_operating_window


@pytest.mark.asyncio
async def test_create_vehicle_defaults(test_db: AsyncSession):
    """Test vehicle column defaults."""
    vehicle = Vehicle(parc="4521", type="Standard", model="Citaro", registration="AB-123-CD")

    test_db.add(vehicle)
    await test_db.commit()
    await test_db.refresh(vehicle)

    assert vehicle.status == "Available"
    assert vehicle.technical_state == 100
    assert vehicle.reduced_mobility is False


@pytest.mark.asyncio
async def test_line_unique_constraint(test_db: AsyncSession):
    """Test that line numbers must be unique."""
    test_db.add(Line(number="12", name="Line 12"))
    await test_db.commit()

    test_db.add(Line(number="12", name="Another 12"))

    with pytest.raises(Exception):  # Should raise IntegrityError
        await test_db.commit()


@pytest.mark.asyncio
async def test_trip_unique_constraint(test_db: AsyncSession):
    """Test that a direction cannot hold the same slot twice on one day."""
    line, direction = await _line_with_direction(test_db)
    slot = dict(line_id=line.id, direction_id=direction.id, date=date(2026, 10, 17),
                start_time="08:00", end_time="09:00")
    test_db.add(Trip(**slot))
    await test_db.commit()

    test_db.add(Trip(**slot))

    with pytest.raises(Exception):  # Should raise IntegrityError
        await test_db.commit()


@pytest.mark.asyncio
async def test_cascade_delete_direction_trips(test_db: AsyncSession):
    """Test that deleting a direction removes its trips and their check-ins."""
    line, direction = await _line_with_direction(test_db)
    conductor = Conductor(last_name="Martin", first_name="Lea", employee_number="E1",
                          license="D", hired_on=date(2020, 1, 6))
    trip = Trip(line_id=line.id, direction_id=direction.id, date=date(2026, 10, 17),
                start_time="08:00", end_time="09:00")
    test_db.add_all([conductor, trip])
    await test_db.commit()
    test_db.add(CheckIn(trip_id=trip.id, conductor_id=conductor.id, validated_by="Chef"))
    await test_db.commit()

    await test_db.delete(direction)
    await test_db.commit()

    assert (await test_db.execute(select(Trip))).scalar_one_or_none() is None
    assert (await test_db.execute(select(CheckIn))).scalar_one_or_none() is None
    assert (await test_db.execute(select(Conductor))).scalar_one() is not None


@pytest.mark.asyncio
async def test_itinerary_survives_direction_delete(test_db: AsyncSession):
    """Test that removing a direction only detaches its itineraries."""
    line, direction = await _line_with_direction(test_db)
    itinerary = Itinerary(line_id=line.id, direction_id=direction.id, name="Centre")
    test_db.add(itinerary)
    await test_db.commit()
    test_db.add(Stop(itinerary_id=itinerary.id, name="Gare", position=1))
    await test_db.commit()

    await test_db.delete(direction)
    await test_db.commit()
    await test_db.refresh(itinerary)

    assert itinerary.direction_id is None
    stops = (await test_db.execute(select(Stop))).scalars().all()
    assert [stop.name for stop in stops] == ["Gare"]
