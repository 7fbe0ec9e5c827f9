"""Calendar helpers shared by the resource endpoints."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

from ..config import settings
from .errors import ValidationError

DateInput = Union[str, date, datetime, None]


def operating_zone() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def today_local() -> date:
    """Current calendar date in the network's operating timezone."""
    return datetime.now(operating_zone()).date()


def parse_date_flexible(value: DateInput, field: str = "date") -> Optional[date]:
    """Accept ``DD/MM/YYYY``, ISO dates or ISO timestamps; blank means ``None``.

    Raises:
        ValidationError: If a non-blank value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    if not raw:
        return None

    try:
        if "/" in raw:
            day, month, year = raw.split("/")
            return date(int(year), int(month), int(day))
        if "T" in raw or " " in raw:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(
            f"{field} is not a valid date: {value!r}", code="invalid_date", field=field
        ) from exc


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """``[start, end)`` of a local calendar day, expressed in UTC.

    Timestamps are stored in UTC, so range filters compare against UTC bounds.
    """
    zone = operating_zone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
