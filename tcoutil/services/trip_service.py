"""Creation, update and lookup of scheduled trips."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import CheckIn, Conductor, Direction, Line, Trip, TripStatus
from .dates import parse_date_flexible, today_local
from .errors import RecordNotFoundError, ValidationError, require_fields
from .trip_window import OperatingWindow, normalise_clock, validate_trip_times
from .updates import FieldUpdate, UpdateKind, UpdatePlan, apply_updates

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("direction_id", "start_time", "end_time")


@dataclass
class TripCreation:
    """Outcome of a create request: the stored trip and whether it pre-existed."""

    trip: Trip
    duplicate: bool = False


def _resolve_status(raw: Any, default: Optional[TripStatus] = TripStatus.PLANNED) -> str:
    if (raw is None or raw == "") and default is not None:
        return default.value
    try:
        return TripStatus(raw).value
    except ValueError as exc:
        allowed = ", ".join(status.value for status in TripStatus)
        raise ValidationError(
            f"status must be one of: {allowed}", code="invalid_status", field="status"
        ) from exc


class TripService:
    """Applies the scheduling rules around the ``trips`` table."""

    def __init__(self, db: AsyncSession):
        self._db = db

    def _with_relations(self):
        return (
            select(Trip)
            .options(
                selectinload(Trip.line),
                selectinload(Trip.direction),
                selectinload(Trip.conductor),
            )
            .execution_options(populate_existing=True)
        )

    async def get_trip(self, trip_id: int) -> Trip:
        """Load a trip with its line, direction and conductor.

        Raises:
            RecordNotFoundError: If no trip has this id.
        """
        result = await self._db.execute(self._with_relations().where(Trip.id == trip_id))
        trip = result.scalar_one_or_none()
        if trip is None:
            raise RecordNotFoundError("Trip", trip_id)
        return trip

    async def list_trips(
        self,
        line_id: Optional[int] = None,
        conductor_id: Optional[int] = None,
        direction_id: Optional[int] = None,
        on_date: Optional[date] = None,
    ) -> List[Trip]:
        stmt = self._with_relations().order_by(Trip.date, Trip.start_time, Trip.id)
        if line_id is not None:
            stmt = stmt.where(Trip.line_id == line_id)
        if conductor_id is not None:
            stmt = stmt.where(Trip.conductor_id == conductor_id)
        if direction_id is not None:
            stmt = stmt.where(Trip.direction_id == direction_id)
        if on_date is not None:
            stmt = stmt.where(Trip.date == on_date)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def _operating_window(self, line_id: Optional[int]) -> Optional[OperatingWindow]:
        if line_id is None:
            return None
        line = await self._db.get(Line, line_id)
        if line is None:
            return None
        return OperatingWindow.from_labels(line.operating_start, line.operating_end)

    async def _find_identical(
        self, direction_id: int, on_date: date, start_time: str, end_time: str
    ) -> Optional[Trip]:
        result = await self._db.execute(
            self._with_relations().where(
                Trip.direction_id == direction_id,
                Trip.date == on_date,
                Trip.start_time == start_time,
                Trip.end_time == end_time,
            )
        )
        return result.scalars().first()

    async def create_trip(self, payload: Mapping[str, Any]) -> TripCreation:
        """
        Validate a trip request and persist it unless an identical trip exists.

        Args:
            payload: Request fields ``direction_id``, ``start_time``,
                ``end_time`` and optionally ``line_id``, ``date``, ``status``,
                ``conductor_id``.

        Returns:
            ``TripCreation`` holding the new trip, or the existing identical
            one with ``duplicate=True``.

        Raises:
            MissingFieldsError: If a required field is absent.
            TripWindowError: If the times break the duration or window rules.
            RecordNotFoundError: If the direction does not exist.
        """
        require_fields(payload, REQUIRED_FIELDS)

        start_time = normalise_clock(payload["start_time"], "start_time")
        end_time = normalise_clock(payload["end_time"], "end_time")
        direction_id = payload["direction_id"]
        line_id = payload.get("line_id")
        status = _resolve_status(payload.get("status"))

        window = await self._operating_window(line_id)
        validate_trip_times(start_time, end_time, window)

        if await self._db.get(Direction, direction_id) is None:
            raise RecordNotFoundError("Direction", direction_id)

        on_date = parse_date_flexible(payload.get("date")) or today_local()

        existing = await self._find_identical(direction_id, on_date, start_time, end_time)
        if existing is not None:
            logger.info(
                "Trip %s-%s on %s for direction %s already exists (id=%s)",
                start_time, end_time, on_date, direction_id, existing.id,
                extra={"trip_id": existing.id, "direction_id": direction_id, "line_id": line_id},
            )
            return TripCreation(trip=existing, duplicate=True)

        trip = Trip(
            direction_id=direction_id,
            line_id=line_id,
            conductor_id=payload.get("conductor_id"),
            date=on_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
        )
        self._db.add(trip)
        try:
            await self._db.flush()
        except IntegrityError:
            # A concurrent request inserted the same trip first
            await self._db.rollback()
            existing = await self._find_identical(direction_id, on_date, start_time, end_time)
            if existing is None:
                raise
            logger.warning(
                "Concurrent insert of trip %s-%s on %s resolved to id=%s",
                start_time, end_time, on_date, existing.id,
                extra={"trip_id": existing.id, "direction_id": direction_id, "line_id": line_id},
            )
            return TripCreation(trip=existing, duplicate=True)

        logger.info(
            "Trip %s created: %s-%s on %s",
            trip.id, start_time, end_time, on_date,
            extra={"trip_id": trip.id, "direction_id": direction_id, "line_id": line_id},
        )
        return TripCreation(trip=await self.get_trip(trip.id))

    async def update_trip(self, trip_id: int, plan: UpdatePlan) -> Trip:
        """
        Apply a partial update; changed times are re-checked against the rules.

        Raises:
            RecordNotFoundError: If the trip or the new conductor does not exist.
            TripWindowError: If the merged times break the duration or window rules.
            ValidationError: If the status is blank or not a ``TripStatus`` value.
        """
        trip = await self.get_trip(trip_id)
        plan = dict(plan)

        for field in ("start_time", "end_time"):
            update = plan.get(field)
            if update and update.kind is UpdateKind.SET:
                plan[field] = FieldUpdate.set_to(normalise_clock(update.value, field))

        start = plan.get("start_time")
        end = plan.get("end_time")
        if (start and start.kind is UpdateKind.SET) or (end and end.kind is UpdateKind.SET):
            start_time = start.value if start and start.kind is UpdateKind.SET else trip.start_time
            end_time = end.value if end and end.kind is UpdateKind.SET else trip.end_time
            window = await self._operating_window(trip.line_id)
            validate_trip_times(start_time, end_time, window)

        conductor = plan.get("conductor_id")
        if conductor and conductor.kind is UpdateKind.SET:
            if await self._db.get(Conductor, conductor.value) is None:
                raise RecordNotFoundError("Conductor", conductor.value)

        status = plan.get("status")
        if status and status.kind is UpdateKind.SET:
            plan["status"] = FieldUpdate.set_to(_resolve_status(status.value, default=None))

        apply_updates(trip, plan, required=("date", "start_time", "end_time", "status"))
        await self._db.flush()
        return await self.get_trip(trip_id)

    async def delete_trip(self, trip_id: int) -> None:
        trip = await self._db.get(Trip, trip_id)
        if trip is None:
            raise RecordNotFoundError("Trip", trip_id)
        await self._db.delete(trip)
        await self._db.flush()

    async def purge_trips(self) -> int:
        """Delete every trip (and the check-ins hanging off them); return the trip count."""
        await self._db.execute(delete(CheckIn))
        result = await self._db.execute(delete(Trip))
        await self._db.flush()
        return result.rowcount or 0
