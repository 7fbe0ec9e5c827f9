"""API routes for line directions ("sens")."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db_session
from ..models import Direction, Line, Trip
from ..services.errors import RecordNotFoundError, require_fields
from ..services.updates import apply_updates, plan_updates
from .errors import get_or_404, http_errors
from .trips import TripSummary

router = APIRouter()


class DirectionUpdate(BaseModel):
    name: Optional[str] = None
    direction: Optional[str] = None
    position: Optional[int] = None
    status: Optional[str] = None


class DirectionCreate(DirectionUpdate):
    line_id: Optional[int] = None


class DirectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    line_id: int
    name: str
    direction: Optional[str] = None
    position: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DirectionWithTrips(DirectionResponse):
    trips: List[TripSummary] = []


def _with_trips():
    return (
        select(Direction)
        .options(selectinload(Direction.trips).selectinload(Trip.conductor))
        .execution_options(populate_existing=True)
    )


async def _load(db: AsyncSession, direction_id: int) -> Direction:
    result = await db.execute(_with_trips().where(Direction.id == direction_id))
    direction = result.scalar_one_or_none()
    if direction is None:
        raise RecordNotFoundError("Direction", direction_id)
    return direction


@router.get("/line/{line_id}", response_model=List[DirectionWithTrips])
async def list_line_directions(line_id: int, db: AsyncSession = Depends(get_db_session)):
    """Directions of a line in display order."""
    with http_errors("List directions"):
        result = await db.execute(
            _with_trips()
            .where(Direction.line_id == line_id)
            .order_by(Direction.position, Direction.id)
        )
        return result.scalars().all()


@router.get("/{direction_id}", response_model=DirectionWithTrips)
async def get_direction(direction_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get direction"):
        return await _load(db, direction_id)


@router.get("/{direction_id}/trips", response_model=List[TripSummary])
async def list_direction_trips(direction_id: int, db: AsyncSession = Depends(get_db_session)):
    """Trips of a direction with their conductor, ordered by date and start time."""
    with http_errors("List direction trips"):
        await get_or_404(db, Direction, direction_id)
        result = await db.execute(
            select(Trip)
            .options(selectinload(Trip.conductor))
            .where(Trip.direction_id == direction_id)
            .order_by(Trip.date, Trip.start_time)
        )
        return result.scalars().all()


@router.post("", response_model=DirectionWithTrips, status_code=status.HTTP_201_CREATED)
async def create_direction(payload: DirectionCreate, db: AsyncSession = Depends(get_db_session)):
    """Create a direction; requires ``line_id`` and ``name``."""
    with http_errors("Create direction"):
        require_fields(payload.model_dump(), ("line_id", "name"))
        await get_or_404(db, Line, payload.line_id)
        direction = Direction(
            line_id=payload.line_id,
            name=payload.name.strip(),
            direction=payload.direction or None,
            position=payload.position if payload.position is not None else 1,
            status=payload.status or "Active",
        )
        db.add(direction)
        await db.flush()
        return await _load(db, direction.id)


@router.put("/{direction_id}", response_model=DirectionWithTrips)
async def update_direction(
    direction_id: int,
    payload: DirectionUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    with http_errors("Update direction"):
        direction = await get_or_404(db, Direction, direction_id)
        plan = plan_updates(payload, blank_clears=("direction",))
        apply_updates(direction, plan, required=("name", "position", "status"))
        await db.flush()
        return await _load(db, direction_id)


@router.delete("/{direction_id}")
async def delete_direction(direction_id: int, db: AsyncSession = Depends(get_db_session)):
    """Delete a direction together with its trips."""
    with http_errors("Delete direction"):
        direction = await get_or_404(db, Direction, direction_id)
        await db.delete(direction)
        await db.flush()
        return {"ok": True}
