"""
Statistics API Endpoints

GET /api/v1/stats/me - Student dashboard numbers
GET /api/v1/stats/attendance - Attendee counts per session (admin)
GET /api/v1/stats/syllabus-tracking - Completion per syllabus (admin)
GET /api/v1/stats/attendance-alerts - Students below an attendance threshold (staff)
GET /api/v1/stats/tutor-attendance/{tutor_id} - Per-session attendance rate of a group (staff)
GET /api/v1/stats/weekly-participation - Sessions, check-ins and students per tutor (staff)
GET /api/v1/stats/events-overview - Registered vs attended per event (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_admin, require_staff, require_student
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import EventStatus
from mentorboard.services import reports
from mentorboard.services.attendance import attendance_overview
from mentorboard.services.stats import student_stats
from mentorboard.services.syllabus import syllabus_tracking_report

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


class StudentStats(BaseModel):
    student_id: UUID
    points: int
    experience: int
    rank: Optional[int] = None
    attended_sessions: int
    events_joined: int


class AttendanceRow(BaseModel):
    session_id: UUID
    title: str
    session_date: datetime
    tutor: str
    attendees: int


class SyllabusTrackingRow(BaseModel):
    syllabus_id: UUID
    title: str
    is_global: bool
    tutor: str
    total_lessons: int
    taught_lessons: int
    progress_percentage: int


class AlertRow(BaseModel):
    student_id: UUID
    username: str
    full_name: str
    email: str
    tutor_id: Optional[UUID] = None
    attended_sessions: int
    total_sessions: int
    attendance_percentage: float


class AttendanceAlerts(BaseModel):
    threshold: float
    students: List[AlertRow]


class TutorSessionRow(BaseModel):
    session_id: UUID
    title: str
    session_date: datetime
    attended_students: int
    absent_students: int
    attendance_rate: int


class TutorAttendance(BaseModel):
    tutor_id: UUID
    tutor_name: str
    total_students: int
    total_sessions: int
    overall_attendance_rate: int
    sessions: List[TutorSessionRow]


class ParticipationRow(BaseModel):
    tutor_id: UUID
    tutor: str
    total_sessions: int
    total_attendances: int
    unique_students: int


class EventOverviewRow(BaseModel):
    event_id: UUID
    title: str
    event_date: datetime
    status: str
    event_type: str
    capacity: int
    registered: int
    attended: int
    attendance_rate: int


@router.get("/me", response_model=StudentStats)
async def my_stats(user: User = Depends(require_student), db: AsyncSession = Depends(get_db)):
    return await student_stats(db, user)


@router.get("/attendance", response_model=List[AttendanceRow])
async def attendance_stats(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await attendance_overview(db)


@router.get("/syllabus-tracking", response_model=List[SyllabusTrackingRow])
async def syllabus_tracking(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await syllabus_tracking_report(db)


@router.get("/attendance-alerts", response_model=AttendanceAlerts)
async def attendance_alerts(
    threshold: Optional[float] = Query(None, ge=0, le=100, description="Alert below this percentage"),
    tutor_id: Optional[UUID] = Query(None, description="Narrow to one tutor's group (admin)"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await reports.attendance_alerts(db, user, threshold, tutor_id)


@router.get("/tutor-attendance/{tutor_id}", response_model=TutorAttendance)
async def tutor_attendance(tutor_id: UUID, user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    return await reports.tutor_attendance(db, user, tutor_id)


@router.get("/weekly-participation", response_model=List[ParticipationRow])
async def weekly_participation(
    week: Optional[int] = Query(None, ge=1, le=52, description="Week of the active period"),
    tutor_id: Optional[UUID] = Query(None),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await reports.weekly_participation(db, user, week, tutor_id)


@router.get("/events-overview", response_model=List[EventOverviewRow])
async def events_overview(
    event_type_id: Optional[UUID] = Query(None),
    status: Optional[EventStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reports.events_overview(db, event_type_id, status)
