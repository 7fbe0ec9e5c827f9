"""Database readiness gate consulted by the request middleware.

The process starts ``NOT_READY``. A single connectivity probe at startup
moves it to ``READY``; if the probe fails the API keeps serving the
database-free endpoints and answers 503 everywhere else until restarted.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Awaitable, Callable, FrozenSet, Optional

logger = logging.getLogger(__name__)

# Paths answered without touching the database
DATABASE_FREE_PATHS: FrozenSet[str] = frozenset(
    {
        "/",
        "/health",
        "/api/today",
        "/api/server-time",
        "/api/cors-test",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
)


class ReadinessState(str, enum.Enum):
    NOT_READY = "not_ready"
    READY = "ready"


class DatabaseReadiness:
    """Two-state readiness flag driven by a one-shot probe."""

    def __init__(self) -> None:
        self.state = ReadinessState.NOT_READY
        self.last_error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.state is ReadinessState.READY

    def mark_ready(self) -> None:
        self.state = ReadinessState.READY
        self.last_error = None

    def reset(self) -> None:
        self.state = ReadinessState.NOT_READY
        self.last_error = None

    async def probe(self, check: Callable[[], Awaitable[None]]) -> ReadinessState:
        """Run ``check`` once; success moves the gate to ``READY``.

        A failed probe is logged and leaves the gate ``NOT_READY``.
        """
        if self.is_ready:
            return self.state

        started = time.perf_counter()
        try:
            await check()
        except Exception as exc:  # pylint: disable=broad-except
            self.last_error = str(exc) or exc.__class__.__name__
            logger.error("Database connection failed: %s", self.last_error, exc_info=True)
            logger.warning("Starting without database; data endpoints will answer 503")
            return self.state

        self.mark_ready()
        logger.info("Database connection successful (%.0fms)", (time.perf_counter() - started) * 1000)
        return self.state

    def allows(self, path: str) -> bool:
        """Whether a request for ``path`` may proceed in the current state."""
        return self.is_ready or path in DATABASE_FREE_PATHS


readiness = DatabaseReadiness()
