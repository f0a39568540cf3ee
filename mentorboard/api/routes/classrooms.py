"""
Classroom API Endpoints

GET /api/v1/classrooms - Caller's classrooms (all for admins)
POST /api/v1/classrooms - Create a classroom
GET /api/v1/classrooms/{classroom_id}/progress - Taught lessons per syllabus
PUT /api/v1/classrooms/{classroom_id}/progress/{lesson_id} - Mark a lesson taught / untaught
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_roles
from mentorboard.api.schemas import ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services import syllabus as syllabus_service

router = APIRouter(prefix="/api/v1/classrooms", tags=["syllabus"])

require_instructor = require_roles(UserRole.ADMIN, UserRole.TUTOR)


class ClassroomOut(ORMModel):
    id: UUID
    name: str
    description: Optional[str] = None
    tutor_id: UUID
    created_at: datetime


class ClassroomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    tutor_id: Optional[UUID] = Field(None, description="Owning tutor (admin only)")


class ProgressUpdate(BaseModel):
    is_taught: bool
    notes: Optional[str] = None


class ProgressOut(ORMModel):
    id: UUID
    classroom_id: UUID
    syllabus_id: UUID
    lesson_id: UUID
    is_taught: bool
    taught_date: Optional[datetime] = None
    notes: Optional[str] = None


class LessonProgress(BaseModel):
    lesson_id: UUID
    title: str
    order_index: int
    is_taught: bool
    taught_date: Optional[datetime] = None
    notes: Optional[str] = None


class SyllabusProgress(BaseModel):
    syllabus_id: UUID
    title: str
    lessons: List[LessonProgress]


class ClassroomProgress(BaseModel):
    classroom_id: UUID
    name: str
    syllabi: List[SyllabusProgress]


@router.get("", response_model=List[ClassroomOut])
async def list_classrooms(user: User = Depends(require_instructor), db: AsyncSession = Depends(get_db)):
    return await syllabus_service.list_classrooms(db, user)


@router.post("", response_model=ClassroomOut, status_code=201)
async def create_classroom(
    body: ClassroomCreate,
    user: User = Depends(require_instructor),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.create_classroom(db, user, body.name, body.description, body.tutor_id)


@router.get("/{classroom_id}/progress", response_model=ClassroomProgress)
async def classroom_progress(
    classroom_id: UUID,
    user: User = Depends(require_instructor),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.get_classroom_progress(db, user, classroom_id)


@router.put("/{classroom_id}/progress/{lesson_id}", response_model=ProgressOut)
async def set_progress(
    classroom_id: UUID,
    lesson_id: UUID,
    body: ProgressUpdate,
    user: User = Depends(require_instructor),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.set_lesson_progress(
        db, user, classroom_id, lesson_id, body.is_taught, body.notes
    )
