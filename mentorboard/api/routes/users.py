"""
User API Endpoints

GET /api/v1/users - List users (admin: all; staff: own group's students)
POST /api/v1/users - Create user (admin)
GET /api/v1/users/my-students - Students of the caller's group
GET /api/v1/users/{user_id} - User detail
PATCH /api/v1/users/{user_id} - Update user (admin)
POST /api/v1/users/{user_id}/password - Reset password (admin)
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_admin, require_staff
from mentorboard.api.schemas import MessageResponse, UserOut
from mentorboard.database import get_db
from mentorboard.exceptions import PermissionDeniedError
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services import users as user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=6)
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tutor_id: Optional[UUID] = None
    assisted_tutor_id: Optional[UUID] = None


class UserUpdate(BaseModel):
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    tutor_id: Optional[UUID] = None
    assisted_tutor_id: Optional[UUID] = None


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=6)


@router.get("", response_model=List[UserOut])
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role (admin only)"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db, user, role)


@router.post("", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.create_user(db, **body.model_dump())


@router.get("/my-students", response_model=List[UserOut])
async def my_students(user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    return await user_service.list_my_students(db, user)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Users see themselves, staff their group's students, admins everyone"""
    if user.id == user_id:
        return user
    if user.role == UserRole.STUDENT.value:
        raise PermissionDeniedError("You can only view your own profile")
    if user.role == UserRole.ADMIN.value:
        return await user_service.get_user(db, user_id)
    return await user_service.get_student_in_scope(db, user, user_id)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, **body.model_dump(exclude_unset=True))


@router.post("/{user_id}/password", response_model=MessageResponse)
async def reset_password(
    user_id: UUID,
    body: PasswordReset,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, admin, user_id, body.new_password)
    return MessageResponse(message="Password updated")
