"""API routes for transit lines."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db_session
from ..models import Direction, Line, Trip
from ..services.errors import RecordNotFoundError, require_fields
from ..services.payloads import decode_list, decode_object
from ..services.trip_window import normalise_clock
from ..services.updates import apply_updates, plan_updates
from .directions import DirectionWithTrips
from .errors import get_or_404, http_errors

router = APIRouter()

DEFAULT_CALENDAR: Dict[str, bool] = {
    "monday": True,
    "tuesday": True,
    "wednesday": True,
    "thursday": True,
    "friday": True,
    "saturday": False,
    "sunday": False,
}


class LineUpdate(BaseModel):
    number: Optional[str] = None
    name: Optional[str] = None
    vehicle_types: Optional[Union[List[str], str]] = None
    status: Optional[str] = None
    description: Optional[str] = None
    operating_start: Optional[str] = None
    operating_end: Optional[str] = None
    calendar: Optional[Union[Dict[str, Any], str]] = None
    constraints: Optional[str] = None


class LineCreate(LineUpdate):
    """Schema for creating a line; ``number`` and ``name`` are required."""


class LineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    name: str
    vehicle_types: List[str] = []
    status: str
    description: Optional[str] = None
    operating_start: Optional[str] = None
    operating_end: Optional[str] = None
    calendar: Optional[Dict[str, Any]] = None
    constraints: Optional[str] = None
    directions: List[DirectionWithTrips] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _converters() -> Dict[str, Any]:
    return {
        "number": str.strip,
        "name": str.strip,
        "vehicle_types": lambda value: decode_list(value, "vehicle_types") or [],
        "operating_start": lambda value: normalise_clock(value, "operating_start"),
        "operating_end": lambda value: normalise_clock(value, "operating_end"),
        "calendar": lambda value: decode_object(value, "calendar"),
    }


def _with_tree():
    return (
        select(Line)
        .options(
            selectinload(Line.directions)
            .selectinload(Direction.trips)
            .selectinload(Trip.conductor)
        )
        .execution_options(populate_existing=True)
    )


async def _load(db: AsyncSession, line_id: int) -> Line:
    result = await db.execute(_with_tree().where(Line.id == line_id))
    line = result.scalar_one_or_none()
    if line is None:
        raise RecordNotFoundError("Line", line_id)
    return line


@router.get("", response_model=List[LineResponse])
async def list_lines(db: AsyncSession = Depends(get_db_session)):
    """List lines by number with their directions, trips and conductors."""
    with http_errors("List lines"):
        result = await db.execute(_with_tree().order_by(Line.number))
        return result.scalars().all()


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(line_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get line"):
        return await _load(db, line_id)


@router.post("", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(payload: LineCreate, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Create line"):
        require_fields(payload.model_dump(), ("number", "name"))
        converters = _converters()
        line = Line(
            number=payload.number.strip(),
            name=payload.name.strip(),
            vehicle_types=converters["vehicle_types"](payload.vehicle_types),
            status=payload.status or "Active",
            description=payload.description or None,
            operating_start=(
                converters["operating_start"](payload.operating_start)
                if payload.operating_start else None
            ),
            operating_end=(
                converters["operating_end"](payload.operating_end)
                if payload.operating_end else None
            ),
            calendar=decode_object(payload.calendar, "calendar"),
            constraints=payload.constraints or None,
        )
        db.add(line)
        await db.flush()
        return await _load(db, line.id)


@router.put("/{line_id}", response_model=LineResponse)
async def update_line(line_id: int, payload: LineUpdate, db: AsyncSession = Depends(get_db_session)):
    """Partially update a line, including its operating window and calendar."""
    with http_errors("Update line"):
        line = await get_or_404(db, Line, line_id)
        plan = plan_updates(
            payload,
            blank_clears=("description", "operating_start", "operating_end", "constraints"),
            converters=_converters(),
        )
        apply_updates(line, plan, required=("number", "name", "vehicle_types", "status"))
        await db.flush()
        return await _load(db, line_id)


@router.delete("/{line_id}")
async def delete_line(line_id: int, db: AsyncSession = Depends(get_db_session)):
    """Delete a line with its directions, trips and itineraries."""
    with http_errors("Delete line"):
        line = await get_or_404(db, Line, line_id)
        await db.delete(line)
        await db.flush()
        return {"ok": True}


@router.post("/init-calendars")
async def init_calendars(db: AsyncSession = Depends(get_db_session)):
    """Give every line without a calendar the default Monday-to-Friday one."""
    with http_errors("Initialise calendars"):
        result = await db.execute(select(Line).order_by(Line.number))
        updated = 0
        for line in result.scalars():
            if not line.calendar:
                line.calendar = dict(DEFAULT_CALENDAR)
                updated += 1
        await db.flush()
        return {"message": f"{updated} lines updated", "updated": updated}
