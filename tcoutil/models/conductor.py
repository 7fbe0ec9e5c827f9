"""Conductor (driver) model."""

import datetime as dt
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Date, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcoutil.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tcoutil.models.check_in import CheckIn
    from tcoutil.models.trip import Trip


class Conductor(Base, TimestampMixin):
    """A driver who can be assigned to trips and checked in at dispatch."""

    __tablename__ = "conductors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    license: Mapped[str] = mapped_column(String(50), nullable=False)
    hired_on: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active")
    contract_type: Mapped[str] = mapped_column(String(30), nullable=False, default="CDI")
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Qualifications
    articulated_buses: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    coaches: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reduced_mobility: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    goods_vehicles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Structured sub-records, see services.payloads for the accepted shapes
    tachograph_card: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    fco: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    safety: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    medical_check: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    vaccinations: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    max_hours: Mapped[float] = mapped_column(Float, nullable=False, default=35)
    regulatory_hours: Mapped[float] = mapped_column(Float, nullable=False, default=35)

    # Relationships
    trips: Mapped[List["Trip"]] = relationship("Trip", back_populates="conductor")

    check_ins: Mapped[List["CheckIn"]] = relationship(
        "CheckIn",
        back_populates="conductor",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Conductor(id={self.id}, name={self.first_name} {self.last_name})>"
