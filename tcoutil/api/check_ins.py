"""API routes for dispatch check-ins ("pointages")."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db_session
from ..models import CheckIn, Conductor, Trip, TripStatus
from ..services.checkin_stats import CheckInStatsService
from ..services.dates import day_bounds, parse_date_flexible, today_local
from ..services.errors import RecordNotFoundError, require_fields
from ..services.updates import apply_updates, plan_updates
from .conductors import ConductorSummary
from .errors import get_or_404, http_errors
from .trips import TripResponse

router = APIRouter()
logger = logging.getLogger(__name__)


class CheckInUpdate(BaseModel):
    vehicle_type: Optional[str] = None
    license_checked: Optional[bool] = None
    tachograph_checked: Optional[bool] = None


class CheckInCreate(CheckInUpdate):
    trip_id: Optional[int] = None
    conductor_id: Optional[int] = None
    validated_by: Optional[str] = None


class CheckInResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trip_id: int
    conductor_id: int
    validated_by: str
    vehicle_type: Optional[str] = None
    license_checked: bool
    tachograph_checked: bool
    validated_at: datetime
    trip: Optional[TripResponse] = None
    conductor: Optional[ConductorSummary] = None


def _with_relations():
    return (
        select(CheckIn)
        .options(
            selectinload(CheckIn.trip).selectinload(Trip.line),
            selectinload(CheckIn.trip).selectinload(Trip.direction),
            selectinload(CheckIn.trip).selectinload(Trip.conductor),
            selectinload(CheckIn.conductor),
        )
        .execution_options(populate_existing=True)
    )


async def _load(db: AsyncSession, check_in_id: int) -> CheckIn:
    result = await db.execute(_with_relations().where(CheckIn.id == check_in_id))
    check_in = result.scalar_one_or_none()
    if check_in is None:
        raise RecordNotFoundError("CheckIn", check_in_id)
    return check_in


@router.get("", response_model=List[CheckInResponse])
async def list_check_ins(
    trip_id: Optional[int] = Query(default=None),
    conductor_id: Optional[int] = Query(default=None),
    date_from: Optional[str] = Query(default=None),
    date_to: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session)
):
    """List check-ins, newest first, optionally restricted to a trip, conductor or day range."""
    with http_errors("List check-ins"):
        stmt = _with_relations().order_by(CheckIn.validated_at.desc(), CheckIn.id.desc())
        if trip_id is not None:
            stmt = stmt.where(CheckIn.trip_id == trip_id)
        if conductor_id is not None:
            stmt = stmt.where(CheckIn.conductor_id == conductor_id)
        first_day = parse_date_flexible(date_from, "date_from")
        if first_day is not None:
            stmt = stmt.where(CheckIn.validated_at >= day_bounds(first_day)[0])
        last_day = parse_date_flexible(date_to, "date_to")
        if last_day is not None:
            stmt = stmt.where(CheckIn.validated_at < day_bounds(last_day)[1])
        result = await db.execute(stmt)
        return result.scalars().all()


@router.get("/stats/daily")
async def daily_stats(
    date: Optional[str] = Query(default=None, description="Day to report, defaults to today"),
    db: AsyncSession = Depends(get_db_session)
) -> Dict[str, Any]:
    """Dispatch dashboard for one day: coverage, rankings and check rates."""
    with http_errors("Daily check-in stats"):
        day = parse_date_flexible(date) or today_local()
        start, end = day_bounds(day)

        trips = (await db.execute(select(Trip).where(Trip.date == day))).scalars().all()
        check_ins = (
            await db.execute(
                select(CheckIn)
                .options(
                    selectinload(CheckIn.trip).selectinload(Trip.line),
                    selectinload(CheckIn.conductor),
                )
                .where(CheckIn.validated_at >= start, CheckIn.validated_at < end)
            )
        ).scalars().all()

        return CheckInStatsService().summarise(day, trips, check_ins)


@router.get("/{check_in_id}", response_model=CheckInResponse)
async def get_check_in(check_in_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get check-in"):
        return await _load(db, check_in_id)


@router.post("", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
async def create_check_in(payload: CheckInCreate, db: AsyncSession = Depends(get_db_session)):
    """
    Validate a trip at dispatch.

    The trip is marked ``Completed`` and the check-in recorded in the same
    transaction. Requires ``trip_id``, ``conductor_id`` and ``validated_by``.
    """
    with http_errors("Create check-in"):
        require_fields(payload.model_dump(), ("trip_id", "conductor_id", "validated_by"))
        trip = await get_or_404(db, Trip, payload.trip_id)
        await get_or_404(db, Conductor, payload.conductor_id)

        trip.status = TripStatus.COMPLETED.value
        check_in = CheckIn(
            trip_id=payload.trip_id,
            conductor_id=payload.conductor_id,
            validated_by=payload.validated_by.strip(),
            vehicle_type=payload.vehicle_type or None,
            license_checked=bool(payload.license_checked),
            tachograph_checked=bool(payload.tachograph_checked),
        )
        db.add(check_in)
        await db.flush()
        logger.info(
            "Trip %s checked in by %s",
            payload.trip_id,
            check_in.validated_by,
            extra={
                "check_in_id": check_in.id,
                "trip_id": payload.trip_id,
                "conductor_id": payload.conductor_id,
            },
        )
        return await _load(db, check_in.id)


@router.put("/{check_in_id}", response_model=CheckInResponse)
async def update_check_in(
    check_in_id: int,
    payload: CheckInUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Update the vehicle type or the document-check flags of a check-in."""
    with http_errors("Update check-in"):
        check_in = await get_or_404(db, CheckIn, check_in_id)
        plan = plan_updates(payload, blank_clears=("vehicle_type",))
        apply_updates(check_in, plan, required=("license_checked", "tachograph_checked"))
        await db.flush()
        return await _load(db, check_in_id)


@router.delete("/{check_in_id}")
async def delete_check_in(check_in_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Delete check-in"):
        check_in = await get_or_404(db, CheckIn, check_in_id)
        await db.delete(check_in)
        await db.flush()
        return {"ok": True}
