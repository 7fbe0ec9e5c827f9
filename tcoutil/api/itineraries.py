"""API routes for line itineraries ("trajets")."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db_session
from ..models import Direction, Itinerary, Line
from ..services.errors import RecordNotFoundError, require_fields
from ..services.updates import UpdateKind, apply_updates, plan_updates
from .errors import get_or_404, http_errors
from .stops import StopResponse

router = APIRouter()


class ItineraryUpdate(BaseModel):
    direction_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    position: Optional[int] = None
    status: Optional[str] = None


class ItineraryCreate(ItineraryUpdate):
    line_id: Optional[int] = None


class ItineraryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    line_id: int
    direction_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    position: int
    status: str
    stops: List[StopResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _with_stops():
    return (
        select(Itinerary)
        .options(selectinload(Itinerary.stops))
        .execution_options(populate_existing=True)
    )


async def _load(db: AsyncSession, itinerary_id: int) -> Itinerary:
    result = await db.execute(_with_stops().where(Itinerary.id == itinerary_id))
    itinerary = result.scalar_one_or_none()
    if itinerary is None:
        raise RecordNotFoundError("Itinerary", itinerary_id)
    return itinerary


@router.get("/line/{line_id}", response_model=List[ItineraryResponse])
async def list_line_itineraries(line_id: int, db: AsyncSession = Depends(get_db_session)):
    """Itineraries of a line with their stops in order."""
    with http_errors("List itineraries"):
        result = await db.execute(
            _with_stops()
            .where(Itinerary.line_id == line_id)
            .order_by(Itinerary.position, Itinerary.id)
        )
        return result.scalars().all()


@router.get("/{itinerary_id}", response_model=ItineraryResponse)
async def get_itinerary(itinerary_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get itinerary"):
        return await _load(db, itinerary_id)


@router.post("", response_model=ItineraryResponse, status_code=status.HTTP_201_CREATED)
async def create_itinerary(payload: ItineraryCreate, db: AsyncSession = Depends(get_db_session)):
    """Create an itinerary; requires ``line_id`` and ``name``."""
    with http_errors("Create itinerary"):
        require_fields(payload.model_dump(), ("line_id", "name"))
        await get_or_404(db, Line, payload.line_id)
        if payload.direction_id is not None:
            await get_or_404(db, Direction, payload.direction_id)
        itinerary = Itinerary(
            line_id=payload.line_id,
            direction_id=payload.direction_id,
            name=payload.name.strip(),
            description=payload.description or None,
            position=payload.position if payload.position is not None else 1,
            status=payload.status or "Active",
        )
        db.add(itinerary)
        await db.flush()
        return await _load(db, itinerary.id)


@router.put("/{itinerary_id}", response_model=ItineraryResponse)
async def update_itinerary(
    itinerary_id: int,
    payload: ItineraryUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    with http_errors("Update itinerary"):
        itinerary = await get_or_404(db, Itinerary, itinerary_id)
        plan = plan_updates(payload, blank_clears=("description",))
        direction = plan["direction_id"]
        if direction.kind is UpdateKind.SET:
            await get_or_404(db, Direction, direction.value)
        apply_updates(itinerary, plan, required=("name", "position", "status"))
        await db.flush()
        return await _load(db, itinerary_id)


@router.delete("/{itinerary_id}")
async def delete_itinerary(itinerary_id: int, db: AsyncSession = Depends(get_db_session)):
    """Delete an itinerary and its stops."""
    with http_errors("Delete itinerary"):
        itinerary = await get_or_404(db, Itinerary, itinerary_id)
        await db.delete(itinerary)
        await db.flush()
        return {"ok": True}
