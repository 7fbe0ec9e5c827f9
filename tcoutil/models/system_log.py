"""Database model for centralized service logs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SystemLog(Base):
    """Log record emitted by the API process and persisted for operators."""

    __tablename__ = "system_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    service: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    logger_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    traceback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the log entry to a dictionary."""
        return {
            "id": self.id,
            "service": self.service,
            "level": self.level,
            "logger_name": self.logger_name,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "extra": self.extra or {},
            "traceback": self.traceback,
        }
