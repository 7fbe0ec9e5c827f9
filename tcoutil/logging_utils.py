"""Logging setup and the ``system_logs`` store behind ``/api/system/logs``.

Records at or above ``CENTRALIZED_LOG_LEVEL`` are buffered by
``SystemLogHandler`` and written in batches by ``SystemLogWriter``. Only the
dispatch context listed in ``CONTEXT_FIELDS`` is kept from ``extra=``.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import AsyncSessionLocal
from .models.system_log import SystemLog

FLUSH_INTERVAL_SECONDS = 1.0

CONTEXT_FIELDS = (
    "trip_id",
    "direction_id",
    "line_id",
    "conductor_id",
    "check_in_id",
    "error_code",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


def configure_logging() -> None:
    """Configure root logging from settings (idempotent)."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.log_format)
    logging.getLogger("tcoutil").setLevel(level)


def log_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Dispatch identifiers attached to ``record``, if any."""
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


def to_system_log(record: logging.LogRecord, service: str) -> Dict[str, Any]:
    """Column values of the ``SystemLog`` row for ``record``."""
    row: Dict[str, Any] = {
        "service": service,
        "level": record.levelname,
        "logger_name": record.name,
        "message": record.getMessage(),
        "created_at": datetime.fromtimestamp(record.created, tz=timezone.utc),
        "extra": log_context(record) or None,
    }
    if record.exc_info:
        row["traceback"] = logging.Formatter().formatException(record.exc_info)
    return row


class SystemLogHandler(logging.Handler):
    """Buffers records for the database; overflow is counted, not blocked on."""

    def __init__(self, service: str, level: int, capacity: int) -> None:
        super().__init__(level)
        self.service = service
        self.pending: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=max(1, capacity))
        self.dropped = 0

    def emit(self, record: logging.LogRecord) -> None:
        # The writer's own SQL would feed back into the buffer
        if record.name.startswith("sqlalchemy"):
            return
        try:
            self.pending.put_nowait(to_system_log(record, self.service))
        except asyncio.QueueFull:
            self.dropped += 1

    async def drain(self, session: AsyncSession) -> int:
        """Add every buffered row to ``session``; the caller commits."""
        rows = []
        while not self.pending.empty():
            rows.append(SystemLog(**self.pending.get_nowait()))
        session.add_all(rows)
        await session.flush()
        return len(rows)


class SystemLogWriter:
    """Flushes a ``SystemLogHandler`` to ``system_logs`` on a fixed interval."""

    def __init__(self, handler: SystemLogHandler, interval: float = FLUSH_INTERVAL_SECONDS) -> None:
        self.handler = handler
        self.interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    async def flush(self) -> int:
        if self.handler.pending.empty():
            return 0
        async with AsyncSessionLocal() as session:
            written = await self.handler.drain(session)
            await session.commit()
        return written

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.flush()
            except Exception:  # pragma: no cover
                traceback.print_exc()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="system-log-writer")

    async def stop(self) -> None:
        """Cancel the loop and write whatever is still buffered."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.flush()


_writer: Optional[SystemLogWriter] = None


async def start_system_log(service: str) -> Optional[SystemLogHandler]:
    """Attach the database handler to the root logger when enabled in settings."""
    global _writer

    if not settings.centralized_logging_enabled:
        return None
    if _writer is not None:
        return _writer.handler

    level = getattr(logging, settings.centralized_log_level.upper(), logging.WARNING)
    handler = SystemLogHandler(service, level, settings.centralized_log_queue_size)
    logging.getLogger().addHandler(handler)

    _writer = SystemLogWriter(handler)
    _writer.start()
    return handler


async def stop_system_log() -> None:
    """Detach the database handler and flush what it still holds."""
    global _writer

    if _writer is None:
        return
    logging.getLogger().removeHandler(_writer.handler)
    await _writer.stop()
    _writer = None


def dropped_records() -> int:
    """Records discarded because the buffer was full since startup."""
    return _writer.handler.dropped if _writer is not None else 0
