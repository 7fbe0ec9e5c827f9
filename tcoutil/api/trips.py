"""API routes for scheduled trips ("services")."""

import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db_session
from ..services.dates import parse_date_flexible
from ..services.trip_service import TripService
from ..services.trip_window import normalise_clock
from ..services.updates import plan_updates
from .conductors import ConductorSummary
from .errors import http_errors

router = APIRouter()


class LineRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    name: str


class DirectionRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    direction: Optional[str] = None


class TripSummary(BaseModel):
    """Trip as listed under a direction."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    start_time: str
    end_time: str
    status: str
    conductor: Optional[ConductorSummary] = None


class TripResponse(TripSummary):
    line_id: Optional[int] = None
    direction_id: Optional[int] = None
    conductor_id: Optional[int] = None
    line: Optional[LineRef] = None
    direction: Optional[DirectionRef] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class TripCreateResponse(TripResponse):
    duplicate: bool = False


class TripCreate(BaseModel):
    """Trip creation request; required fields are checked by the service."""
    direction_id: Optional[int] = None
    line_id: Optional[int] = None
    conductor_id: Optional[int] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[str] = None


class TripUpdate(BaseModel):
    conductor_id: Optional[int] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[str] = None


def _converters() -> Dict[str, Any]:
    return {
        "date": lambda value: parse_date_flexible(value, "date"),
        "start_time": lambda value: normalise_clock(value, "start_time"),
        "end_time": lambda value: normalise_clock(value, "end_time"),
    }


@router.get("", response_model=List[TripResponse])
async def list_trips(
    line_id: Optional[int] = Query(default=None),
    conductor_id: Optional[int] = Query(default=None),
    date: Optional[str] = Query(default=None, description="DD/MM/YYYY or YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db_session)
):
    """List trips ordered by date then start time."""
    with http_errors("List trips"):
        return await TripService(db).list_trips(
            line_id=line_id,
            conductor_id=conductor_id,
            on_date=parse_date_flexible(date),
        )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get trip"):
        return await TripService(db).get_trip(trip_id)


@router.post("", response_model=TripCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    payload: TripCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session)
):
    """
    Create a trip after checking its times against the line's operating window.

    An identical trip (same direction, date, start and end) is returned as-is
    with ``duplicate`` set and status 200 instead of being inserted again.
    """
    with http_errors("Create trip"):
        creation = await TripService(db).create_trip(payload.model_dump())
        body = TripCreateResponse.model_validate(creation.trip)
        body.duplicate = creation.duplicate
        if creation.duplicate:
            response.status_code = status.HTTP_200_OK
        return body


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int,
    payload: TripUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Partially update a trip; new times go through the same checks as creation."""
    with http_errors("Update trip"):
        plan = plan_updates(payload, converters=_converters())
        return await TripService(db).update_trip(trip_id, plan)


@router.delete("/{trip_id}")
async def delete_trip(trip_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Delete trip"):
        await TripService(db).delete_trip(trip_id)
        return {"ok": True}


@router.delete("")
async def purge_trips(db: AsyncSession = Depends(get_db_session)):
    """Delete every trip and its check-ins."""
    with http_errors("Purge trips"):
        count = await TripService(db).purge_trips()
        return {"message": f"{count} trips deleted", "count": count}
