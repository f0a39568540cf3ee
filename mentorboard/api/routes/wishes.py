"""
Wish API Endpoints

GET /api/v1/wishes/mine - Caller's wishes (student)
POST /api/v1/wishes - Submit a wish in the active period (student)
GET /api/v1/wishes - All wishes with their author (admin)
GET /api/v1/wishes/{wish_id} - One wish with its author (admin)
PATCH /api/v1/wishes/{wish_id} - Review a wish (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_admin, require_student
from mentorboard.api.schemas import ORMModel, UserSummary
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import WishStatus
from mentorboard.services import wishes as wish_service

router = APIRouter(prefix="/api/v1/wishes", tags=["wishes"])


class WishOut(ORMModel):
    id: UUID
    title: str
    description: str
    student_id: UUID
    period_id: UUID
    status: str
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class WishWithStudent(WishOut):
    student: UserSummary


class WishCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)


class WishReview(BaseModel):
    status: Optional[WishStatus] = None
    admin_note: Optional[str] = None


@router.get("/mine", response_model=List[WishOut])
async def my_wishes(user: User = Depends(require_student), db: AsyncSession = Depends(get_db)):
    return await wish_service.list_own_wishes(db, user)


@router.post("", response_model=WishOut, status_code=201)
async def create_wish(body: WishCreate, user: User = Depends(require_student), db: AsyncSession = Depends(get_db)):
    return await wish_service.create_wish(db, user, body.title, body.description)


@router.get("", response_model=List[WishWithStudent])
async def all_wishes(
    status: Optional[WishStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await wish_service.list_all_wishes(db, status)
    return [
        WishWithStudent(**WishOut.model_validate(wish).model_dump(), student=UserSummary.model_validate(student))
        for wish, student in rows
    ]


@router.get("/{wish_id}", response_model=WishWithStudent)
async def get_wish(wish_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    wish = await wish_service.get_wish(db, wish_id)
    student = await db.get(User, wish.student_id)
    return WishWithStudent(**WishOut.model_validate(wish).model_dump(), student=UserSummary.model_validate(student))


@router.patch("/{wish_id}", response_model=WishOut)
async def review_wish(
    wish_id: UUID,
    body: WishReview,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await wish_service.review_wish(db, admin, wish_id, body.status, body.admin_note)
