"""Line and direction models."""

from sqlalchemy import String, Integer, Text, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from tcoutil.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tcoutil.models.itinerary import Itinerary
    from tcoutil.models.trip import Trip


class Line(Base, TimestampMixin):
    """A public-transit route with an optional daily operating window."""

    __tablename__ = "lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    vehicle_types: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active", index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "HH:MM" local time; operating_end < operating_start means the window wraps midnight
    operating_start: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    operating_end: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    calendar: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    constraints: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    directions: Mapped[List["Direction"]] = relationship(
        "Direction",
        back_populates="line",
        cascade="all, delete-orphan",
        order_by="Direction.position",
    )

    trips: Mapped[List["Trip"]] = relationship(
        "Trip",
        back_populates="line",
        cascade="all, delete-orphan",
    )

    itineraries: Mapped[List["Itinerary"]] = relationship(
        "Itinerary",
        back_populates="line",
        cascade="all, delete-orphan",
        order_by="Itinerary.position",
    )

    @property
    def has_operating_window(self) -> bool:
        return bool(self.operating_start and self.operating_end)

    def __repr__(self) -> str:
        return f"<Line(number={self.number}, name={self.name}, status={self.status})>"


class Direction(Base, TimestampMixin):
    """One directional variant ("sens") of a line."""

    __tablename__ = "directions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    line_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    direction: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active")

    # Relationships
    line: Mapped["Line"] = relationship("Line", back_populates="directions")

    trips: Mapped[List["Trip"]] = relationship(
        "Trip",
        back_populates="direction",
        cascade="all, delete-orphan",
        order_by="Trip.start_time",
    )

    # Itineraries survive their direction; the reference is cleared instead
    itineraries: Mapped[List["Itinerary"]] = relationship(
        "Itinerary",
        back_populates="direction",
    )

    def __repr__(self) -> str:
        return f"<Direction(id={self.id}, line_id={self.line_id}, name={self.name})>"
