"""Duration and operating-window rules for scheduled trips.

Times are wall-clock "HH:MM" strings in the network's local time, converted
to minutes since midnight. A trip may cross midnight once (its end is then
smaller than its start); multi-day spans are not representable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError

MINUTES_PER_DAY = 1440
MAX_TRIP_MINUTES = 600  # depot departure to depot return


class TripWindowError(ValidationError):
    """A trip's times break the duration cap or its line's operating window."""


def parse_clock(value: str, field: str = "time") -> int:
    """Convert ``"HH:MM"`` to minutes since midnight.

    Raises:
        TripWindowError: If the value is not a valid 24h clock time.
    """
    hours, sep, minutes = str(value).strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise TripWindowError(
            f"{field} must be formatted HH:MM, got {value!r}", code="invalid_time", field=field
        )
    hour, minute = int(hours), int(minutes)
    if hour > 23 or minute > 59:
        raise TripWindowError(
            f"{field} is out of range: {value!r}", code="invalid_time", field=field
        )
    return hour * 60 + minute


def format_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalise_clock(value: str, field: str = "time") -> str:
    """Validate a clock time and return it as zero-padded ``"HH:MM"``."""
    return format_clock(parse_clock(value, field))


def trip_duration(start: int, end: int) -> int:
    """Minutes between ``start`` and ``end``, wrapping once past midnight."""
    if end < start:
        return (MINUTES_PER_DAY - start) + end
    return end - start


@dataclass(frozen=True)
class OperatingWindow:
    """A line's daily service window; ``end < start`` means it wraps midnight."""

    start: int
    end: int
    start_label: str
    end_label: str

    @classmethod
    def from_labels(cls, start: Optional[str], end: Optional[str]) -> Optional["OperatingWindow"]:
        """Build a window from a line's bounds, or ``None`` if either is unset."""
        if not start or not end:
            return None
        return cls(
            start=parse_clock(start, "operating_start"),
            end=parse_clock(end, "operating_end"),
            start_label=start,
            end_label=end,
        )

    @property
    def wraps_midnight(self) -> bool:
        return self.end < self.start


def check_duration(start: int, end: int) -> int:
    """Return the trip duration, rejecting empty or over-long trips."""
    duration = trip_duration(start, end)
    if duration > MAX_TRIP_MINUTES:
        raise TripWindowError(
            f"Trip duration of {duration} minutes exceeds the {MAX_TRIP_MINUTES} minute limit",
            code="duration_exceeds_limit",
            duration=duration,
        )
    if duration <= 0:
        raise TripWindowError("End time must be after start time", code="end_before_start")
    return duration


def check_operating_window(start: int, end: int, window: OperatingWindow) -> None:
    """Reject a trip whose times fall outside ``window``."""
    if not window.wraps_midnight:
        if start < window.start:
            raise TripWindowError(
                f"Trip must start at or after {window.start_label}",
                code="start_before_line_opens",
                boundary=window.start_label,
            )
        if end > window.end:
            raise TripWindowError(
                f"Trip must end at or before {window.end_label}",
                code="end_after_line_closes",
                boundary=window.end_label,
            )
        return

    # Wrapping window: open from window.start to midnight, then midnight to window.end
    if not (start >= window.start or start <= window.end):
        raise TripWindowError(
            f"Trip must start between {window.start_label} and {window.end_label} (next day)",
            code="start_outside_line_window",
            boundary=f"{window.start_label}-{window.end_label}",
        )
    if end < start and start >= window.start and end > window.end:
        raise TripWindowError(
            f"Trip cannot end after {window.end_label}",
            code="end_after_line_closes",
            boundary=window.end_label,
        )


def validate_trip_times(
    start_time: str,
    end_time: str,
    window: Optional[OperatingWindow] = None,
) -> int:
    """Run every time rule for a trip and return its duration in minutes.

    Window violations are reported ahead of duration violations so the
    caller learns which line boundary was crossed. The window check is
    skipped when ``window`` is ``None``.
    """
    start = parse_clock(start_time, "start_time")
    end = parse_clock(end_time, "end_time")
    # 09:00-21:00 on an 08:00-20:00 line is 720 minutes long yet must report
    # end_after_line_closes, so the window is checked first
    if window is not None:
        check_operating_window(start, end, window)
    return check_duration(start, end)
