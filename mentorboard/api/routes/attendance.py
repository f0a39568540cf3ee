"""
Attendance API Endpoints

GET /api/v1/attendance/sessions - Sessions visible to the caller (staff)
POST /api/v1/attendance/sessions - Create session (admin, tutor)
GET|PATCH|DELETE /api/v1/attendance/sessions/{session_id} - Detail / edit / delete
POST /api/v1/attendance/sessions/{session_id}/qr - (Re)generate QR token
GET /api/v1/attendance/sessions/{session_id}/qr.svg - QR code image
POST /api/v1/attendance/sessions/{session_id}/manual-check-in - Staff check-in
GET /api/v1/attendance/verify?token= - Session summary for a token
POST /api/v1/attendance/check-in - Student QR check-in
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.api.auth import require_roles, require_staff, require_student
from mentorboard.api.schemas import MessageResponse, ORMModel, UserSummary
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import AttendanceSessionStatus, UserRole
from mentorboard.services import attendance as attendance_service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])

require_session_owner = require_roles(UserRole.ADMIN, UserRole.TUTOR)


class SessionOut(ORMModel):
    id: UUID
    title: str
    description: Optional[str] = None
    session_date: datetime
    qr_code_token: Optional[str] = None
    qr_code_expires_at: Optional[datetime] = None
    status: str
    created_by_id: UUID
    created_at: datetime


class SessionListItem(SessionOut):
    attendee_count: int


class AttendanceOut(ORMModel):
    id: UUID
    session_id: UUID
    student_id: UUID
    check_in_time: datetime
    check_in_method: str
    notes: Optional[str] = None


class AttendanceWithStudent(AttendanceOut):
    student: UserSummary


class SessionDetail(SessionOut):
    attendances: List[AttendanceWithStudent]


class SessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    session_date: datetime
    generate_qr: bool = False


class SessionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    session_date: Optional[datetime] = None
    status: Optional[AttendanceSessionStatus] = None


class TokenVerification(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    session_date: datetime
    expires_at: Optional[datetime] = None
    tutor_name: Optional[str] = None


class QRCheckInRequest(BaseModel):
    token: str = Field(..., min_length=1)
    session_id: Optional[UUID] = None


class ManualCheckInRequest(BaseModel):
    student_id: UUID
    notes: Optional[str] = None


class CheckInResponse(BaseModel):
    attendance: AttendanceOut
    points_awarded: int


@router.get("/sessions", response_model=List[SessionListItem])
async def list_sessions(user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    rows = await attendance_service.list_sessions(db, user)
    return [
        SessionListItem(**SessionOut.model_validate(session).model_dump(), attendee_count=count)
        for session, count in rows
    ]


@router.post("/sessions", response_model=SessionOut, status_code=201)
async def create_session(
    body: SessionCreate,
    user: User = Depends(require_session_owner),
    db: AsyncSession = Depends(get_db),
):
    return await attendance_service.create_session(db, user, **body.model_dump())


@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(session_id: UUID, user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    session, attendances = await attendance_service.get_session_detail(db, user, session_id)
    return SessionDetail(
        **SessionOut.model_validate(session).model_dump(),
        attendances=[
            AttendanceWithStudent(
                **AttendanceOut.model_validate(attendance).model_dump(),
                student=UserSummary.model_validate(student),
            )
            for attendance, student in attendances
        ],
    )


@router.patch("/sessions/{session_id}", response_model=SessionOut)
async def update_session(
    session_id: UUID,
    body: SessionUpdate,
    user: User = Depends(require_session_owner),
    db: AsyncSession = Depends(get_db),
):
    return await attendance_service.update_session(db, user, session_id, **body.model_dump(exclude_unset=True))


@router.delete("/sessions/{session_id}", response_model=MessageResponse)
async def delete_session(
    session_id: UUID,
    user: User = Depends(require_session_owner),
    db: AsyncSession = Depends(get_db),
):
    await attendance_service.delete_session(db, user, session_id)
    return MessageResponse(message="Session deleted")


@router.post("/sessions/{session_id}/qr", response_model=SessionOut)
async def generate_qr(
    session_id: UUID,
    user: User = Depends(require_session_owner),
    db: AsyncSession = Depends(get_db),
):
    return await attendance_service.generate_session_qr(db, user, session_id)


@router.get("/sessions/{session_id}/qr.svg")
async def session_qr_svg(session_id: UUID, user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    svg = await attendance_service.render_session_qr(db, user, session_id)
    return Response(content=svg, media_type="image/svg+xml")


@router.post("/sessions/{session_id}/manual-check-in", response_model=CheckInResponse, status_code=201)
async def manual_check_in(
    session_id: UUID,
    body: ManualCheckInRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    attendance = await attendance_service.manual_check_in(db, user, session_id, body.student_id, body.notes)
    return CheckInResponse(
        attendance=AttendanceOut.model_validate(attendance),
        points_awarded=config.ATTENDANCE_POINTS,
    )


@router.get("/verify", response_model=TokenVerification)
async def verify_token(
    token: str = Query(..., min_length=1),
    user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await attendance_service.verify_token(db, token)


@router.post("/check-in", response_model=CheckInResponse, status_code=201)
async def qr_check_in(
    body: QRCheckInRequest,
    user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    attendance = await attendance_service.check_in_with_token(db, user, body.token, body.session_id)
    return CheckInResponse(
        attendance=AttendanceOut.model_validate(attendance),
        points_awarded=config.ATTENDANCE_POINTS,
    )

