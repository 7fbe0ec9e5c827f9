"""Daily aggregate statistics over dispatch check-ins."""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, Iterable, List, Sequence

ConductorStats = Dict[str, Any]

UNKNOWN_HOUR = "??"
UNKNOWN_ROLE = "Unknown"
UNKNOWN_LINE = "??"
RANKING_SIZE = 5


def _percent(part: int, total: int) -> int:
    """Whole percentage, halves rounded up."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def _hour_of(trip: Any) -> str:
    start = getattr(trip, "start_time", None) if trip is not None else None
    head = (start or "").split(":")[0]
    return head or UNKNOWN_HOUR


class CheckInStatsService:
    """Builds the daily dispatch dashboard from trips and their check-ins.

    Works on any objects exposing the ORM attribute names, so it can be fed
    query results directly.
    """

    def summarise(self, day: date, trips: Sequence[Any], check_ins: Sequence[Any]) -> Dict[str, Any]:
        """Return the statistics payload for ``day``.

        Args:
            day: The calendar day being reported.
            trips: Trips scheduled on ``day``.
            check_ins: Check-ins validated on ``day`` with ``trip`` (and its
                ``line``) and ``conductor`` loaded.
        """
        total_trips = len(trips)
        total_check_ins = len(check_ins)

        conductors = self._by_conductor(check_ins)
        ranked = sorted(conductors, key=lambda entry: entry["check_ins"], reverse=True)

        license_checked = sum(entry["license_checked"] for entry in conductors)
        tachograph_checked = sum(entry["tachograph_checked"] for entry in conductors)

        return {
            "date": day.isoformat(),
            "total_trips": total_trips,
            "total_check_ins": total_check_ins,
            "validation_rate": _percent(total_check_ins, total_trips),
            "conductor_stats": conductors,
            "top_conductors": ranked[:RANKING_SIZE],
            "bottom_conductors": list(reversed(ranked[-RANKING_SIZE:])),
            "hourly_distribution": self._hourly(trips, check_ins),
            "vehicle_types": self._count(
                check_in.vehicle_type for check_in in check_ins if check_in.vehicle_type
            ),
            "validated_by": self._count(
                check_in.validated_by or UNKNOWN_ROLE for check_in in check_ins
            ),
            "line_stats": self._by_line(check_ins),
            "license_check_rate": _percent(license_checked, total_check_ins),
            "tachograph_check_rate": _percent(tachograph_checked, total_check_ins),
        }

    @staticmethod
    def _count(values: Iterable[str]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for value in values:
            counts[value] = counts.get(value, 0) + 1
        return counts

    @staticmethod
    def _by_conductor(check_ins: Sequence[Any]) -> List[ConductorStats]:
        stats: Dict[Any, ConductorStats] = {}
        for check_in in check_ins:
            key = check_in.conductor_id
            entry = stats.get(key)
            if entry is None:
                conductor = getattr(check_in, "conductor", None)
                entry = stats[key] = {
                    "id": key,
                    "last_name": conductor.last_name if conductor else "Unknown",
                    "first_name": conductor.first_name if conductor else "",
                    "check_ins": 0,
                    "license_checked": 0,
                    "tachograph_checked": 0,
                }
            entry["check_ins"] += 1
            if check_in.license_checked:
                entry["license_checked"] += 1
            if check_in.tachograph_checked:
                entry["tachograph_checked"] += 1
        return list(stats.values())

    @staticmethod
    def _hourly(trips: Sequence[Any], check_ins: Sequence[Any]) -> Dict[str, Dict[str, int]]:
        distribution: Dict[str, Dict[str, int]] = {}
        for trip in trips:
            bucket = distribution.setdefault(_hour_of(trip), {"total": 0, "validated": 0})
            bucket["total"] += 1
        # Check-ins only count toward hours that have trips scheduled that day
        for check_in in check_ins:
            bucket = distribution.get(_hour_of(getattr(check_in, "trip", None)))
            if bucket is not None:
                bucket["validated"] += 1
        return dict(sorted(distribution.items()))

    @staticmethod
    def _by_line(check_ins: Sequence[Any]) -> List[Dict[str, Any]]:
        lines: Dict[str, Dict[str, Any]] = {}
        for check_in in check_ins:
            trip = getattr(check_in, "trip", None)
            line = getattr(trip, "line", None) if trip is not None else None
            number = line.number if line is not None else UNKNOWN_LINE
            entry = lines.setdefault(number, {"number": number, "check_ins": 0})
            entry["check_ins"] += 1
        return sorted(lines.values(), key=lambda entry: entry["check_ins"], reverse=True)
