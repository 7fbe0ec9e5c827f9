"""API routes for fleet vehicles."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db_session
from ..models import Vehicle
from ..services.dates import parse_date_flexible
from ..services.errors import require_fields
from ..services.payloads import decode_list, decode_object
from ..services.updates import apply_updates, plan_updates
from .errors import get_or_404, http_errors

router = APIRouter()

JsonObject = Union[Dict[str, Any], str]

OPTION_FIELDS = ("factory_options", "workshop_options", "saeiv_options")
TEXT_FIELDS = (
    "gearbox", "engine", "destination_sign", "air_conditioning", "depot", "inspection_date",
)


class VehicleUpdate(BaseModel):
    """Fields accepted when editing a vehicle; omitted fields are left untouched."""
    type: Optional[str] = None
    model: Optional[str] = None
    registration: Optional[str] = None
    mileage: Optional[int] = None
    technical_state: Optional[int] = None
    cleanliness: Optional[int] = None
    interior_state: Optional[int] = None
    status: Optional[str] = None
    year: Optional[int] = None
    gearbox: Optional[str] = None
    engine: Optional[str] = None
    doors: Optional[int] = None
    destination_sign: Optional[str] = None
    air_conditioning: Optional[str] = None
    reduced_mobility: Optional[bool] = None
    depot: Optional[str] = None
    inspection_date: Optional[str] = None
    photos: Optional[Union[List[str], str]] = None
    factory_options: Optional[JsonObject] = None
    workshop_options: Optional[JsonObject] = None
    saeiv_options: Optional[JsonObject] = None


class VehicleCreate(VehicleUpdate):
    """Schema for creating (or replacing) a vehicle."""
    parc: Optional[str] = None


class VehicleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    parc: str
    type: str
    model: str
    registration: str
    mileage: int
    technical_state: int
    cleanliness: int
    interior_state: int
    status: str
    year: Optional[int] = None
    gearbox: Optional[str] = None
    engine: Optional[str] = None
    doors: Optional[int] = None
    destination_sign: Optional[str] = None
    air_conditioning: Optional[str] = None
    reduced_mobility: bool
    depot: Optional[str] = None
    inspection_date: Optional[date] = None
    photos: Optional[List[str]] = None
    factory_options: Optional[Dict[str, Any]] = None
    workshop_options: Optional[Dict[str, Any]] = None
    saeiv_options: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _converters() -> Dict[str, Any]:
    converters: Dict[str, Any] = {
        "registration": lambda value: value.strip().upper(),
        "inspection_date": lambda value: parse_date_flexible(value, "inspection_date"),
        "photos": lambda value: decode_list(value, "photos"),
    }
    for name in OPTION_FIELDS:
        converters[name] = lambda value, field=name: decode_object(value, field)
    return converters


def _new_vehicle_values(payload: VehicleCreate) -> Dict[str, Any]:
    return {
        "parc": payload.parc.strip(),
        "type": payload.type,
        "model": payload.model,
        "registration": payload.registration.strip().upper(),
        "mileage": payload.mileage if payload.mileage is not None else 0,
        "technical_state": payload.technical_state if payload.technical_state is not None else 100,
        "cleanliness": payload.cleanliness if payload.cleanliness is not None else 100,
        "interior_state": payload.interior_state if payload.interior_state is not None else 100,
        "status": payload.status or "Available",
        "year": payload.year,
        "gearbox": payload.gearbox or None,
        "engine": payload.engine or None,
        "doors": payload.doors,
        "destination_sign": payload.destination_sign or None,
        "air_conditioning": payload.air_conditioning or None,
        "reduced_mobility": bool(payload.reduced_mobility),
        "depot": payload.depot or None,
        "inspection_date": parse_date_flexible(payload.inspection_date, "inspection_date"),
        "photos": decode_list(payload.photos, "photos"),
        "factory_options": decode_object(payload.factory_options, "factory_options"),
        "workshop_options": decode_object(payload.workshop_options, "workshop_options"),
        "saeiv_options": decode_object(payload.saeiv_options, "saeiv_options"),
    }


async def _reload(db: AsyncSession, parc: str) -> Vehicle:
    result = await db.execute(
        select(Vehicle).where(Vehicle.parc == parc).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("", response_model=List[VehicleResponse])
async def list_vehicles(db: AsyncSession = Depends(get_db_session)):
    """List every vehicle ordered by fleet number."""
    with http_errors("List vehicles"):
        result = await db.execute(select(Vehicle).order_by(Vehicle.parc))
        return result.scalars().all()


@router.get("/{parc}", response_model=VehicleResponse)
async def get_vehicle(parc: str, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get vehicle"):
        return await get_or_404(db, Vehicle, parc)


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(payload: VehicleCreate, db: AsyncSession = Depends(get_db_session)):
    """
    Create a vehicle, or replace the one already registered under the same parc.

    Requires ``parc``, ``type``, ``model`` and ``registration``.
    """
    with http_errors("Create vehicle"):
        require_fields(payload.model_dump(), ("parc", "type", "model", "registration"))
        values = _new_vehicle_values(payload)

        vehicle = await db.get(Vehicle, values["parc"])
        if vehicle is None:
            vehicle = Vehicle(**values)
            db.add(vehicle)
        else:
            for key, value in values.items():
                setattr(vehicle, key, value)
        await db.flush()
        return await _reload(db, values["parc"])


@router.put("/{parc}", response_model=VehicleResponse)
async def update_vehicle(
    parc: str,
    payload: VehicleUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Partially update a vehicle; send ``null`` (or ``""`` for text) to clear a field."""
    with http_errors("Update vehicle"):
        vehicle = await get_or_404(db, Vehicle, parc)
        plan = plan_updates(payload, blank_clears=TEXT_FIELDS, converters=_converters())
        apply_updates(
            vehicle,
            plan,
            required=(
                "type", "model", "registration", "mileage", "technical_state",
                "cleanliness", "interior_state", "status", "reduced_mobility",
            ),
        )
        await db.flush()
        return await _reload(db, parc)


@router.delete("/{parc}")
async def delete_vehicle(parc: str, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Delete vehicle"):
        vehicle = await get_or_404(db, Vehicle, parc)
        await db.delete(vehicle)
        await db.flush()
        return {"ok": True}
