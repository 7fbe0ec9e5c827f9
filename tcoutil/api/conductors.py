"""API routes for conductors (drivers)."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db_session
from ..models import Conductor
from ..services.dates import parse_date_flexible, today_local
from ..services.errors import require_fields
from ..services.payloads import decode_object
from ..services.updates import apply_updates, plan_updates
from .errors import get_or_404, http_errors

router = APIRouter()

JsonObject = Union[Dict[str, Any], str]

SUB_RECORDS = ("tachograph_card", "fco", "safety", "medical_check", "vaccinations")


class ConductorUpdate(BaseModel):
    """Fields accepted when editing a conductor."""
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    employee_number: Optional[str] = None
    license: Optional[str] = None
    hired_on: Optional[str] = None
    status: Optional[str] = None
    contract_type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    articulated_buses: Optional[bool] = None
    coaches: Optional[bool] = None
    reduced_mobility: Optional[bool] = None
    goods_vehicles: Optional[bool] = None
    tachograph_card: Optional[JsonObject] = None
    fco: Optional[JsonObject] = None
    safety: Optional[JsonObject] = None
    medical_check: Optional[JsonObject] = None
    vaccinations: Optional[JsonObject] = None
    max_hours: Optional[float] = None
    regulatory_hours: Optional[float] = None


class ConductorCreate(ConductorUpdate):
    """Schema for creating a conductor."""


class ConductorSummary(BaseModel):
    """Compact conductor representation embedded in trips and check-ins."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    last_name: str
    first_name: str
    employee_number: str
    status: str


class ConductorResponse(ConductorSummary):
    license: str
    hired_on: date
    contract_type: str
    phone: Optional[str] = None
    email: Optional[str] = None
    articulated_buses: bool
    coaches: bool
    reduced_mobility: bool
    goods_vehicles: bool
    tachograph_card: Optional[Dict[str, Any]] = None
    fco: Optional[Dict[str, Any]] = None
    safety: Optional[Dict[str, Any]] = None
    medical_check: Optional[Dict[str, Any]] = None
    vaccinations: Optional[Dict[str, Any]] = None
    max_hours: float
    regulatory_hours: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _converters() -> Dict[str, Any]:
    converters: Dict[str, Any] = {
        "last_name": str.strip,
        "first_name": str.strip,
        "employee_number": str.strip,
        "hired_on": lambda value: parse_date_flexible(value, "hired_on"),
    }
    for name in SUB_RECORDS:
        converters[name] = lambda value, field=name: decode_object(value, field)
    return converters


async def _reload(db: AsyncSession, conductor_id: int) -> Conductor:
    result = await db.execute(
        select(Conductor)
        .where(Conductor.id == conductor_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("", response_model=List[ConductorResponse])
async def list_conductors(db: AsyncSession = Depends(get_db_session)):
    """List conductors ordered by last name."""
    with http_errors("List conductors"):
        result = await db.execute(
            select(Conductor).order_by(Conductor.last_name, Conductor.first_name)
        )
        return result.scalars().all()


@router.get("/{conductor_id}", response_model=ConductorResponse)
async def get_conductor(conductor_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get conductor"):
        return await get_or_404(db, Conductor, conductor_id)


@router.post("", response_model=ConductorResponse, status_code=status.HTTP_201_CREATED)
async def create_conductor(payload: ConductorCreate, db: AsyncSession = Depends(get_db_session)):
    """Create a conductor; requires last/first name, employee number and license."""
    with http_errors("Create conductor"):
        require_fields(
            payload.model_dump(), ("last_name", "first_name", "employee_number", "license")
        )
        conductor = Conductor(
            last_name=payload.last_name.strip(),
            first_name=payload.first_name.strip(),
            employee_number=payload.employee_number.strip(),
            license=payload.license,
            hired_on=parse_date_flexible(payload.hired_on, "hired_on") or today_local(),
            status=payload.status or "Active",
            contract_type=payload.contract_type or "CDI",
            phone=payload.phone or None,
            email=payload.email or None,
            articulated_buses=bool(payload.articulated_buses),
            coaches=bool(payload.coaches),
            reduced_mobility=bool(payload.reduced_mobility),
            goods_vehicles=bool(payload.goods_vehicles),
            max_hours=payload.max_hours if payload.max_hours is not None else 35,
            regulatory_hours=(
                payload.regulatory_hours if payload.regulatory_hours is not None else 35
            ),
            **{name: decode_object(getattr(payload, name), name) for name in SUB_RECORDS},
        )
        db.add(conductor)
        await db.flush()
        return await _reload(db, conductor.id)


@router.put("/{conductor_id}", response_model=ConductorResponse)
async def update_conductor(
    conductor_id: int,
    payload: ConductorUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Partially update a conductor."""
    with http_errors("Update conductor"):
        conductor = await get_or_404(db, Conductor, conductor_id)
        plan = plan_updates(payload, blank_clears=("phone", "email", "hired_on"), converters=_converters())
        apply_updates(
            conductor,
            plan,
            required=(
                "last_name", "first_name", "employee_number", "license", "hired_on",
                "status", "contract_type", "articulated_buses", "coaches",
                "reduced_mobility", "goods_vehicles", "max_hours", "regulatory_hours",
            ),
        )
        await db.flush()
        return await _reload(db, conductor_id)


@router.delete("/{conductor_id}")
async def delete_conductor(conductor_id: int, db: AsyncSession = Depends(get_db_session)):
    """Delete a conductor; their trips are unassigned and their check-ins removed."""
    with http_errors("Delete conductor"):
        conductor = await get_or_404(db, Conductor, conductor_id)
        await db.delete(conductor)
        await db.flush()
        return {"ok": True}
