"""
Period API Endpoints

GET /api/v1/periods - List periods (admin)
POST /api/v1/periods - Create period (admin)
GET /api/v1/periods/active - Active period (any user)
GET|PATCH|DELETE /api/v1/periods/{period_id} - Period detail / edit / delete (admin)
POST /api/v1/periods/{period_id}/activate - Activate and rebuild cached balances from its ledger (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_admin
from mentorboard.api.schemas import MessageResponse, ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import PeriodStatus
from mentorboard.services import periods as period_service

router = APIRouter(prefix="/api/v1/periods", tags=["periods"])


class PeriodOut(ORMModel):
    id: UUID
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    total_weeks: int
    status: str
    created_at: datetime


class PeriodCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    total_weeks: Optional[int] = Field(None, ge=1, le=52)


class PeriodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_weeks: Optional[int] = Field(None, ge=1, le=52)


@router.get("", response_model=List[PeriodOut])
async def list_periods(
    status: Optional[PeriodStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await period_service.list_periods(db, status)


@router.post("", response_model=PeriodOut, status_code=201)
async def create_period(body: PeriodCreate, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await period_service.create_period(db, **body.model_dump())


@router.get("/active", response_model=Optional[PeriodOut])
async def active_period(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await period_service.get_active_period(db)


@router.get("/{period_id}", response_model=PeriodOut)
async def get_period(period_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await period_service.get_period(db, period_id)


@router.patch("/{period_id}", response_model=PeriodOut)
async def update_period(
    period_id: UUID,
    body: PeriodUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await period_service.update_period(db, period_id, **body.model_dump(exclude_unset=True))


@router.delete("/{period_id}", response_model=MessageResponse)
async def delete_period(period_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await period_service.delete_period(db, period_id)
    return MessageResponse(message="Period deleted")


@router.post("/{period_id}/activate", response_model=PeriodOut)
async def activate_period(
    period_id: UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await period_service.activate_period(db, period_id)
