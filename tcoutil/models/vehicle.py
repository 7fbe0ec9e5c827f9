"""Fleet vehicle model."""

import datetime as dt
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Date, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from tcoutil.models.base import Base, TimestampMixin


class Vehicle(Base, TimestampMixin):
    """A bus or coach of the fleet, keyed by its fleet number (parc)."""

    __tablename__ = "vehicles"

    parc: Mapped[str] = mapped_column(String(20), primary_key=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    registration: Mapped[str] = mapped_column(String(20), nullable=False)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Condition scores, 0-100
    technical_state: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    cleanliness: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    interior_state: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Available", index=True)

    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gearbox: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    engine: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    doors: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    destination_sign: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    air_conditioning: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reduced_mobility: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    depot: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    inspection_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    photos: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    factory_options: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    workshop_options: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    saeiv_options: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Vehicle(parc={self.parc}, type={self.type}, status={self.status})>"
