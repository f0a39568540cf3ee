"""
Point Reason API Endpoints

GET /api/v1/point-reasons - All reasons with usage counts (admin)
GET /api/v1/point-reasons/active - Active reasons (staff)
POST /api/v1/point-reasons - Create (admin)
PATCH|DELETE /api/v1/point-reasons/{reason_id} - Edit / delete (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_admin, require_staff
from mentorboard.api.schemas import MessageResponse, ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.services import point_reasons as reason_service

router = APIRouter(prefix="/api/v1/point-reasons", tags=["point-reasons"])


class PointReasonOut(ORMModel):
    id: UUID
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class PointReasonWithUsage(PointReasonOut):
    usage_count: int


class PointReasonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: bool = True


class PointReasonUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None


@router.get("", response_model=List[PointReasonWithUsage])
async def list_reasons(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    rows = await reason_service.list_point_reasons_with_usage(db)
    return [
        PointReasonWithUsage(**PointReasonOut.model_validate(reason).model_dump(), usage_count=count)
        for reason, count in rows
    ]


@router.get("/active", response_model=List[PointReasonOut])
async def list_active_reasons(user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    return await reason_service.list_active_point_reasons(db)


@router.post("", response_model=PointReasonOut, status_code=201)
async def create_reason(
    body: PointReasonCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reason_service.create_point_reason(db, admin, **body.model_dump())


@router.patch("/{reason_id}", response_model=PointReasonOut)
async def update_reason(
    reason_id: UUID,
    body: PointReasonUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reason_service.update_point_reason(db, reason_id, **body.model_dump(exclude_unset=True))


@router.delete("/{reason_id}", response_model=MessageResponse)
async def delete_reason(reason_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await reason_service.delete_point_reason(db, reason_id)
    return MessageResponse(message="Point reason deleted")
