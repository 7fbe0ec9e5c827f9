"""API routes for itinerary stops ("arrets")."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db_session
from ..models import Itinerary, Stop
from ..services.errors import require_fields
from ..services.updates import apply_updates, plan_updates
from .errors import get_or_404, http_errors

router = APIRouter()


class StopUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    position: Optional[int] = None
    minutes_from_previous: Optional[int] = None


class StopCreate(StopUpdate):
    itinerary_id: Optional[int] = None


class StopResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    itinerary_id: int
    name: str
    address: Optional[str] = None
    position: int
    minutes_from_previous: int


async def _next_position(db: AsyncSession, itinerary_id: int) -> int:
    result = await db.execute(
        select(func.max(Stop.position)).where(Stop.itinerary_id == itinerary_id)
    )
    return (result.scalar() or 0) + 1


@router.get("/itinerary/{itinerary_id}", response_model=List[StopResponse])
async def list_itinerary_stops(itinerary_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("List stops"):
        result = await db.execute(
            select(Stop)
            .where(Stop.itinerary_id == itinerary_id)
            .order_by(Stop.position, Stop.id)
        )
        return result.scalars().all()


@router.post("", response_model=StopResponse, status_code=status.HTTP_201_CREATED)
async def create_stop(payload: StopCreate, db: AsyncSession = Depends(get_db_session)):
    """Append a stop; without ``position`` it goes after the current last stop."""
    with http_errors("Create stop"):
        require_fields(payload.model_dump(), ("itinerary_id", "name"))
        await get_or_404(db, Itinerary, payload.itinerary_id)
        position = payload.position
        if position is None:
            position = await _next_position(db, payload.itinerary_id)
        stop = Stop(
            itinerary_id=payload.itinerary_id,
            name=payload.name.strip(),
            address=payload.address or None,
            position=position,
            minutes_from_previous=payload.minutes_from_previous or 0,
        )
        db.add(stop)
        await db.flush()
        await db.refresh(stop)
        return stop


@router.put("/{stop_id}", response_model=StopResponse)
async def update_stop(stop_id: int, payload: StopUpdate, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Update stop"):
        stop = await get_or_404(db, Stop, stop_id)
        plan = plan_updates(payload, blank_clears=("address",))
        apply_updates(stop, plan, required=("name", "position", "minutes_from_previous"))
        await db.flush()
        await db.refresh(stop)
        return stop


@router.delete("/{stop_id}")
async def delete_stop(stop_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Delete stop"):
        stop = await get_or_404(db, Stop, stop_id)
        await db.delete(stop)
        await db.flush()
        return {"ok": True}
