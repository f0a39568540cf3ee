"""
Event API Endpoints

GET /api/v1/events - List events (filters: status, event_type_id)
POST /api/v1/events - Create event (admin, tutor)
GET|PATCH|DELETE /api/v1/events/{event_id} - Detail / edit / delete
POST /api/v1/events/{event_id}/qr - Generate 24h QR token
GET /api/v1/events/{event_id}/qr.svg - QR code image
POST /api/v1/events/{event_id}/register - Student registers
DELETE /api/v1/events/{event_id}/register - Student unregisters
GET /api/v1/events/{event_id}/participation - Caller's participation
POST /api/v1/events/{event_id}/participants - Staff add a student
DELETE /api/v1/events/{event_id}/participants/{student_id} - Remove a participant
POST /api/v1/events/{event_id}/check-in - Student check-in (event ONGOING)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_roles, require_staff, require_student
from mentorboard.api.schemas import MessageResponse, ORMModel, UserSummary
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import EventStatus, UserRole
from mentorboard.services import events as event_service

router = APIRouter(prefix="/api/v1/events", tags=["events"])

require_organizer = require_roles(UserRole.ADMIN, UserRole.TUTOR)


class EventOut(ORMModel):
    id: UUID
    title: str
    description: Optional[str] = None
    event_type_id: UUID
    event_date: datetime
    location: Optional[str] = None
    capacity: int
    registered_count: int
    status: str
    notes: Optional[str] = None
    qr_code_token: Optional[str] = None
    qr_code_expires_at: Optional[datetime] = None
    created_by_id: UUID
    created_at: datetime


class ParticipantOut(ORMModel):
    id: UUID
    event_id: UUID
    student_id: UUID
    status: str
    check_in_method: Optional[str] = None
    check_in_time: Optional[datetime] = None
    registered_at: datetime


class ParticipantWithStudent(ParticipantOut):
    student: UserSummary


class EventDetail(EventOut):
    participants: List[ParticipantWithStudent]


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    event_type_id: UUID
    event_date: datetime
    location: Optional[str] = Field(None, max_length=200)
    capacity: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    generate_qr: bool = False


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    event_type_id: Optional[UUID] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=200)
    capacity: Optional[int] = Field(None, ge=1)
    status: Optional[EventStatus] = None
    notes: Optional[str] = None


class AddParticipantRequest(BaseModel):
    student_id: UUID


class CheckInRequest(BaseModel):
    token: Optional[str] = None


class ParticipationOut(BaseModel):
    event_id: UUID
    registered: bool
    status: Optional[str] = None
    check_in_time: Optional[datetime] = None
    seats_left: int


@router.get("", response_model=List[EventOut])
async def list_events(
    status: Optional[EventStatus] = Query(None),
    event_type_id: Optional[UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.list_events(db, status, event_type_id)


@router.post("", response_model=EventOut, status_code=201)
async def create_event(
    body: EventCreate,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.create_event(db, user, **body.model_dump())


@router.get("/{event_id}", response_model=EventDetail)
async def get_event(event_id: UUID, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    event, participants = await event_service.get_event_detail(db, event_id)
    return EventDetail(
        **EventOut.model_validate(event).model_dump(),
        participants=[
            ParticipantWithStudent(
                **ParticipantOut.model_validate(participant).model_dump(),
                student=UserSummary.model_validate(student),
            )
            for participant, student in participants
        ],
    )


@router.patch("/{event_id}", response_model=EventOut)
async def update_event(
    event_id: UUID,
    body: EventUpdate,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.update_event(db, user, event_id, **body.model_dump(exclude_unset=True))


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(event_id: UUID, user: User = Depends(require_organizer), db: AsyncSession = Depends(get_db)):
    await event_service.delete_event(db, user, event_id)
    return MessageResponse(message="Event deleted")


@router.post("/{event_id}/qr", response_model=EventOut)
async def generate_qr(event_id: UUID, user: User = Depends(require_organizer), db: AsyncSession = Depends(get_db)):
    return await event_service.generate_event_qr(db, user, event_id)


@router.get("/{event_id}/qr.svg")
async def event_qr_svg(event_id: UUID, user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    svg = await event_service.render_event_qr(db, event_id)
    return Response(content=svg, media_type="image/svg+xml")


@router.post("/{event_id}/register", response_model=ParticipantOut, status_code=201)
async def register(event_id: UUID, user: User = Depends(require_student), db: AsyncSession = Depends(get_db)):
    return await event_service.register(db, user, event_id)


@router.delete("/{event_id}/register", response_model=MessageResponse)
async def unregister(event_id: UUID, user: User = Depends(require_student), db: AsyncSession = Depends(get_db)):
    await event_service.unregister(db, user, event_id)
    return MessageResponse(message="Registration cancelled")


@router.get("/{event_id}/participation", response_model=ParticipationOut)
async def participation(event_id: UUID, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await event_service.get_participation(db, user, event_id)


@router.post("/{event_id}/participants", response_model=ParticipantOut, status_code=201)
async def add_participant(
    event_id: UUID,
    body: AddParticipantRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.add_participant(db, user, event_id, body.student_id)


@router.delete("/{event_id}/participants/{student_id}", response_model=MessageResponse)
async def remove_participant(
    event_id: UUID,
    student_id: UUID,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    await event_service.unregister(db, user, event_id, student_id)
    return MessageResponse(message="Participant removed")


@router.post("/{event_id}/check-in", response_model=ParticipantOut)
async def check_in(
    event_id: UUID,
    body: Optional[CheckInRequest] = None,
    user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.check_in(db, user, event_id, body.token if body else None)
