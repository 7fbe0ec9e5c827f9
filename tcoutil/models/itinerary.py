"""Itinerary ("trajet") and stop ("arret") models."""

from sqlalchemy import String, Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, Optional, TYPE_CHECKING

from tcoutil.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tcoutil.models.line import Direction, Line


class Itinerary(Base, TimestampMixin):
    """An ordered path of stops served by a line."""

    __tablename__ = "itineraries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    line_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    direction_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("directions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active")

    # Relationships
    line: Mapped["Line"] = relationship("Line", back_populates="itineraries")
    direction: Mapped[Optional["Direction"]] = relationship("Direction", back_populates="itineraries")

    stops: Mapped[List["Stop"]] = relationship(
        "Stop",
        back_populates="itinerary",
        cascade="all, delete-orphan",
        order_by="Stop.position",
    )

    def __repr__(self) -> str:
        return f"<Itinerary(id={self.id}, line_id={self.line_id}, name={self.name})>"


class Stop(Base, TimestampMixin):
    """A stop along an itinerary."""

    __tablename__ = "stops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    itinerary_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("itineraries.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    minutes_from_previous: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    itinerary: Mapped["Itinerary"] = relationship("Itinerary", back_populates="stops")

    def __repr__(self) -> str:
        return f"<Stop(id={self.id}, itinerary_id={self.itinerary_id}, position={self.position})>"
