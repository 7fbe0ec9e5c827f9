"""Dispatch check-in ("pointage") model."""

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcoutil.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tcoutil.models.conductor import Conductor
    from tcoutil.models.trip import Trip


class CheckIn(Base, TimestampMixin):
    """Records that a conductor/trip pairing was validated at dispatch."""

    __tablename__ = "check_ins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    trip_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    conductor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conductors.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    validated_by: Mapped[str] = mapped_column(String(100), nullable=False)
    vehicle_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    license_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tachograph_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    validated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="check_ins")
    conductor: Mapped["Conductor"] = relationship("Conductor", back_populates="check_ins")

    def __repr__(self) -> str:
        return f"<CheckIn(id={self.id}, trip_id={self.trip_id}, by={self.validated_by})>"
