"""Database models for the TC Outil backend."""

from .base import Base
from .line import Line, Direction
from .trip import Trip, TripStatus
from .conductor import Conductor
from .vehicle import Vehicle
from .check_in import CheckIn
from .saeiv import SaeivDevice
from .itinerary import Itinerary, Stop
from .system_log import SystemLog

__all__ = [
    "Base",
    "Line",
    "Direction",
    "Trip",
    "TripStatus",
    "Conductor",
    "Vehicle",
    "CheckIn",
    "SaeivDevice",
    "Itinerary",
    "Stop",
    "SystemLog",
]
