"""API routes for SAEIV onboard devices."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db_session
from ..models import SaeivDevice
from ..services.errors import require_fields
from ..services.updates import apply_updates, plan_updates
from .errors import get_or_404, http_errors

router = APIRouter()


class SaeivUpdate(BaseModel):
    number: Optional[str] = None
    label: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None


class SaeivResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    label: str
    type: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@router.get("", response_model=List[SaeivResponse])
async def list_saeivs(db: AsyncSession = Depends(get_db_session)):
    with http_errors("List SAEIV devices"):
        result = await db.execute(select(SaeivDevice).order_by(SaeivDevice.number))
        return result.scalars().all()


@router.get("/{device_id}", response_model=SaeivResponse)
async def get_saeiv(device_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Get SAEIV device"):
        return await get_or_404(db, SaeivDevice, device_id)


@router.post("", response_model=SaeivResponse, status_code=status.HTTP_201_CREATED)
async def create_saeiv(payload: SaeivUpdate, db: AsyncSession = Depends(get_db_session)):
    """Register a device; requires ``number``, ``label`` and ``type``."""
    with http_errors("Create SAEIV device"):
        require_fields(payload.model_dump(), ("number", "label", "type"))
        device = SaeivDevice(
            number=payload.number.strip(),
            label=payload.label.strip(),
            type=payload.type,
            status=payload.status or "Active",
        )
        db.add(device)
        await db.flush()
        await db.refresh(device)
        return device


@router.put("/{device_id}", response_model=SaeivResponse)
async def update_saeiv(
    device_id: int,
    payload: SaeivUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    with http_errors("Update SAEIV device"):
        device = await get_or_404(db, SaeivDevice, device_id)
        apply_updates(device, plan_updates(payload), required=("number", "label", "type", "status"))
        await db.flush()
        await db.refresh(device)
        return device


@router.delete("/{device_id}")
async def delete_saeiv(device_id: int, db: AsyncSession = Depends(get_db_session)):
    with http_errors("Delete SAEIV device"):
        device = await get_or_404(db, SaeivDevice, device_id)
        await db.delete(device)
        await db.flush()
        return {"ok": True}
