"""Scheduled trip model."""

import enum
import datetime as dt
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcoutil.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tcoutil.models.check_in import CheckIn
    from tcoutil.models.conductor import Conductor
    from tcoutil.models.line import Direction, Line


class TripStatus(str, enum.Enum):
    """Lifecycle status of a scheduled trip."""

    PLANNED = "Planned"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Trip(Base, TimestampMixin):
    """One scheduled run ("service") of a direction on a given date."""

    __tablename__ = "trips"
    __table_args__ = (
        UniqueConstraint(
            "direction_id", "date", "start_time", "end_time",
            name="uq_trip_direction_date_times",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    line_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    direction_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("directions.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    conductor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("conductors.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TripStatus.PLANNED.value, index=True
    )

    # Relationships
    line: Mapped[Optional["Line"]] = relationship("Line", back_populates="trips")
    direction: Mapped[Optional["Direction"]] = relationship("Direction", back_populates="trips")
    conductor: Mapped[Optional["Conductor"]] = relationship("Conductor", back_populates="trips")

    check_ins: Mapped[List["CheckIn"]] = relationship(
        "CheckIn",
        back_populates="trip",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Trip(id={self.id}, direction_id={self.direction_id}, date={self.date}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )
