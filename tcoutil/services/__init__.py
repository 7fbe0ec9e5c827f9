"""Domain services sitting between the routers and the ORM."""

from .checkin_stats import CheckInStatsService
from .errors import MissingFieldsError, RecordNotFoundError, ValidationError, require_fields
from .trip_service import TripCreation, TripService
from .trip_window import OperatingWindow, TripWindowError, validate_trip_times
from .updates import FieldUpdate, UpdateKind, apply_updates, plan_updates

__all__ = [
    "CheckInStatsService",
    "MissingFieldsError",
    "RecordNotFoundError",
    "ValidationError",
    "require_fields",
    "TripCreation",
    "TripService",
    "OperatingWindow",
    "TripWindowError",
    "validate_trip_times",
    "FieldUpdate",
    "UpdateKind",
    "apply_updates",
    "plan_updates",
]
