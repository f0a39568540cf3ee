"""
Syllabus API Endpoints

GET /api/v1/syllabi - Syllabi visible to the caller with lesson counts (admin, tutor)
POST /api/v1/syllabi - Create a syllabus with lessons
GET|PATCH|DELETE /api/v1/syllabi/{syllabus_id} - Detail / edit / delete
POST /api/v1/syllabi/{syllabus_id}/share - Publish with a share token
POST /api/v1/syllabi/{syllabus_id}/lessons - Append a lesson
PATCH|DELETE /api/v1/syllabi/lessons/{lesson_id} - Edit / delete a lesson
GET /api/v1/syllabi/shared/{share_token} - Public read-only view (no auth)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_roles
from mentorboard.api.schemas import MessageResponse, ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services import syllabus as syllabus_service

router = APIRouter(prefix="/api/v1/syllabi", tags=["syllabus"])

require_author = require_roles(UserRole.ADMIN, UserRole.TUTOR)


class LessonOut(ORMModel):
    id: UUID
    syllabus_id: UUID
    title: str
    description: Optional[str] = None
    order_index: int


class SyllabusOut(ORMModel):
    id: UUID
    title: str
    description: Optional[str] = None
    is_published: bool
    is_global: bool
    share_token: Optional[str] = None
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime


class SyllabusListItem(SyllabusOut):
    lesson_count: int


class SyllabusDetail(SyllabusOut):
    lessons: List[LessonOut]


class SharedSyllabus(BaseModel):
    title: str
    description: Optional[str] = None
    lessons: List[LessonOut]


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class SyllabusCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_global: bool = False
    lessons: List[LessonCreate] = []


class SyllabusUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_published: Optional[bool] = None
    is_global: Optional[bool] = None


def _detail(syllabus, lessons) -> SyllabusDetail:
    return SyllabusDetail(
        **SyllabusOut.model_validate(syllabus).model_dump(),
        lessons=[LessonOut.model_validate(lesson) for lesson in lessons],
    )


@router.get("/shared/{share_token}", response_model=SharedSyllabus)
async def shared_syllabus(share_token: str, db: AsyncSession = Depends(get_db)):
    syllabus, lessons = await syllabus_service.get_syllabus_by_share_token(db, share_token)
    return SharedSyllabus(
        title=syllabus.title,
        description=syllabus.description,
        lessons=[LessonOut.model_validate(lesson) for lesson in lessons],
    )


@router.get("", response_model=List[SyllabusListItem])
async def list_syllabi(user: User = Depends(require_author), db: AsyncSession = Depends(get_db)):
    rows = await syllabus_service.list_syllabi(db, user)
    return [
        SyllabusListItem(**SyllabusOut.model_validate(syllabus).model_dump(), lesson_count=count)
        for syllabus, count in rows
    ]


@router.post("", response_model=SyllabusDetail, status_code=201)
async def create_syllabus(
    body: SyllabusCreate,
    user: User = Depends(require_author),
    db: AsyncSession = Depends(get_db),
):
    syllabus = await syllabus_service.create_syllabus(
        db,
        user,
        body.title,
        body.description,
        [lesson.model_dump(exclude_none=True) for lesson in body.lessons],
        body.is_global,
    )
    return _detail(*await syllabus_service.get_syllabus(db, user, syllabus.id))


@router.get("/{syllabus_id}", response_model=SyllabusDetail)
async def get_syllabus(syllabus_id: UUID, user: User = Depends(require_author), db: AsyncSession = Depends(get_db)):
    return _detail(*await syllabus_service.get_syllabus(db, user, syllabus_id))


@router.patch("/{syllabus_id}", response_model=SyllabusOut)
async def update_syllabus(
    syllabus_id: UUID,
    body: SyllabusUpdate,
    user: User = Depends(require_author),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.update_syllabus(db, user, syllabus_id, **body.model_dump(exclude_unset=True))


@router.delete("/{syllabus_id}", response_model=MessageResponse)
async def delete_syllabus(syllabus_id: UUID, user: User = Depends(require_author), db: AsyncSession = Depends(get_db)):
    await syllabus_service.delete_syllabus(db, user, syllabus_id)
    return MessageResponse(message="Syllabus deleted")


@router.post("/{syllabus_id}/share", response_model=SyllabusOut)
async def share_syllabus(syllabus_id: UUID, user: User = Depends(require_author), db: AsyncSession = Depends(get_db)):
    return await syllabus_service.generate_share_token(db, user, syllabus_id)


@router.post("/{syllabus_id}/lessons", response_model=LessonOut, status_code=201)
async def add_lesson(
    syllabus_id: UUID,
    body: LessonCreate,
    user: User = Depends(require_author),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.add_lesson(db, user, syllabus_id, body.title, body.description)


@router.patch("/lessons/{lesson_id}", response_model=LessonOut)
async def update_lesson(
    lesson_id: UUID,
    body: LessonUpdate,
    user: User = Depends(require_author),
    db: AsyncSession = Depends(get_db),
):
    return await syllabus_service.update_lesson(db, user, lesson_id, **body.model_dump(exclude_unset=True))


@router.delete("/lessons/{lesson_id}", response_model=MessageResponse)
async def delete_lesson(lesson_id: UUID, user: User = Depends(require_author), db: AsyncSession = Depends(get_db)):
    await syllabus_service.delete_lesson(db, user, lesson_id)
    return MessageResponse(message="Lesson deleted")
