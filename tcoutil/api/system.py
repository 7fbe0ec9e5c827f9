"""Operator endpoints: schedule diagnostic and centralized logs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db_session
from ..logging_utils import dropped_records
from ..models import SystemLog, Trip
from ..services.dates import operating_zone, today_local

router = APIRouter()


@router.get("/diagnostic")
async def schedule_diagnostic(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
    """Trip counts per date and status, with the server's idea of "now"."""
    stmt = (
        select(Trip.date, Trip.status, func.count())
        .group_by(Trip.date, Trip.status)
        .order_by(Trip.date)
    )

    dates: Dict[str, Dict[str, Any]] = {}
    total = 0
    for day, status, count in (await db.execute(stmt)).all():
        key = day.isoformat() if day else "unknown"
        entry = dates.setdefault(key, {"date": key, "total": 0, "statuses": {}})
        entry["statuses"][status or "unknown"] = count or 0
        entry["total"] += count or 0
        total += count or 0

    now_utc = datetime.now(timezone.utc)
    return {
        "server_time_utc": now_utc.isoformat(),
        "local_time": now_utc.astimezone(operating_zone()).isoformat(),
        "timezone": settings.timezone,
        "today": today_local().isoformat(),
        "total_trips": total,
        "dates": list(dates.values()),
    }


@router.get("/logs")
async def system_logs(
    limit: int = Query(100, ge=1, le=1000),
    level: Optional[str] = Query(default=None, description="Filter by level name (e.g. ERROR)."),
    logger_name: Optional[str] = Query(default=None, description="Filter by logger name prefix."),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """Most recent entries written by the centralized log handler."""
    stmt = select(SystemLog).order_by(desc(SystemLog.created_at), desc(SystemLog.id))

    if level:
        stmt = stmt.where(SystemLog.level == level.upper())
    if logger_name:
        stmt = stmt.where(SystemLog.logger_name.startswith(logger_name))

    result = await db.execute(stmt.limit(limit))
    items: List[Dict[str, Any]] = [record.to_dict() for record in result.scalars()]
    return {
        "items": items,
        "enabled": settings.centralized_logging_enabled,
        "dropped": dropped_records(),
    }
