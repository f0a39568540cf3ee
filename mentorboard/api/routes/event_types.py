"""
Event Type API Endpoints

GET /api/v1/event-types - List types (any user; active_only filter)
POST /api/v1/event-types - Create (admin, tutor)
PATCH|DELETE /api/v1/event-types/{type_id} - Edit / delete (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_admin, require_roles
from mentorboard.api.schemas import MessageResponse, ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services import events as event_service

router = APIRouter(prefix="/api/v1/event-types", tags=["events"])


class EventTypeOut(ORMModel):
    id: UUID
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class EventTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class EventTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


@router.get("", response_model=List[EventTypeOut])
async def list_types(
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.list_event_types(db, active_only)


@router.post("", response_model=EventTypeOut, status_code=201)
async def create_type(
    body: EventTypeCreate,
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TUTOR)),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.create_event_type(db, user, body.name, body.description)


@router.patch("/{type_id}", response_model=EventTypeOut)
async def update_type(
    type_id: UUID,
    body: EventTypeUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.update_event_type(db, type_id, **body.model_dump(exclude_unset=True))


@router.delete("/{type_id}", response_model=MessageResponse)
async def delete_type(type_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await event_service.delete_event_type(db, type_id)
    return MessageResponse(message="Event type deleted")
