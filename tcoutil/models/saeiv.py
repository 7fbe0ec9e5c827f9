"""Onboard information system (SAEIV) device model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tcoutil.models.base import Base, TimestampMixin


class SaeivDevice(Base, TimestampMixin):
    """An onboard passenger-information / vehicle-location device."""

    __tablename__ = "saeiv_devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active")

    def __repr__(self) -> str:
        return f"<SaeivDevice(number={self.number}, type={self.type})>"
