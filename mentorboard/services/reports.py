"""
Staff Reports

Attendance alerts, per-tutor attendance rates, weekly participation per
tutor and the registered vs attended overview of events.

Tutors and assistants only ever see their own group; admins see everyone
and may narrow a report to one tutor.
"""
import logging
import math
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.exceptions import NotFoundError, PermissionDeniedError
from mentorboard.models import AttendanceSession, Event, EventParticipant, EventType, StudentAttendance, User
from mentorboard.models.enums import EventStatus, ParticipantStatus, UserRole
from mentorboard.services.periods import require_active_period
from mentorboard.services.users import scope_tutor_id

logger = logging.getLogger(__name__)


def percentage(part: int, whole: int, digits: int = 0) -> float:
    """part/whole as a percentage rounded half up; 0 when whole is 0"""
    if whole <= 0:
        return 0
    factor = 10 ** digits
    value = math.floor(part / whole * 100 * factor + 0.5) / factor
    return int(value) if digits == 0 else value


def _report_tutor(actor: User, tutor_id: Optional[UUID]) -> Optional[UUID]:
    """Tutor a report is narrowed to; staff below admin are pinned to their group"""
    scoped = scope_tutor_id(actor)
    if scoped is not None:
        if tutor_id is not None and tutor_id != scoped:
            raise PermissionDeniedError("You can only view reports for your own group")
        return scoped
    return tutor_id


async def attendance_alerts(
    db: AsyncSession,
    actor: User,
    threshold: Optional[float] = None,
    tutor_id: Optional[UUID] = None,
) -> Dict[str, Any]:
    """
    Active students whose attendance rate is below the threshold.

    A student's rate is measured against the sessions run by their own
    tutor. Students whose tutor has not held a session yet are not listed.
    """
    threshold = config.ATTENDANCE_ALERT_THRESHOLD if threshold is None else threshold
    tutor_id = _report_tutor(actor, tutor_id)

    query = select(User).where(User.role == UserRole.STUDENT.value, User.is_active.is_(True))
    if tutor_id is not None:
        query = query.where(User.tutor_id == tutor_id)
    students = list((await db.execute(query)).scalars().all())

    session_counts = dict((await db.execute(
        select(AttendanceSession.created_by_id, func.count(AttendanceSession.id))
        .group_by(AttendanceSession.created_by_id)
    )).all())

    attended_counts = dict((await db.execute(
        select(StudentAttendance.student_id, func.count(StudentAttendance.id))
        .join(AttendanceSession, AttendanceSession.id == StudentAttendance.session_id)
        .join(User, User.id == StudentAttendance.student_id)
        .where(AttendanceSession.created_by_id == User.tutor_id)
        .group_by(StudentAttendance.student_id)
    )).all())

    rows = []
    for student in students:
        total = int(session_counts.get(student.tutor_id, 0))
        if total == 0:
            continue
        attended = int(attended_counts.get(student.id, 0))
        rate = percentage(attended, total, digits=1)
        if rate < threshold:
            rows.append({
                "student_id": student.id,
                "username": student.username,
                "full_name": student.full_name,
                "email": student.email,
                "tutor_id": student.tutor_id,
                "attended_sessions": attended,
                "total_sessions": total,
                "attendance_percentage": rate,
            })

    rows.sort(key=lambda r: (r["attendance_percentage"], r["username"]))
    logger.info(f"Attendance alerts below {threshold}%: {len(rows)} students")
    return {"threshold": threshold, "students": rows}


async def tutor_attendance(db: AsyncSession, actor: User, tutor_id: UUID) -> Dict[str, Any]:
    """
    Attendance rate of a tutor's group for each session the tutor held.

    Raises:
        NotFoundError: tutor_id is not a tutor
        PermissionDeniedError: Caller is outside that tutor's group
    """
    tutor_id = _report_tutor(actor, tutor_id)
    tutor = await db.get(User, tutor_id)
    if tutor is None or tutor.role != UserRole.TUTOR.value:
        raise NotFoundError("Tutor not found")

    total_students = await db.scalar(
        select(func.count(User.id)).where(
            User.tutor_id == tutor.id,
            User.role == UserRole.STUDENT.value,
            User.is_active.is_(True),
        )
    ) or 0

    result = await db.execute(
        select(AttendanceSession, func.count(StudentAttendance.id))
        .outerjoin(StudentAttendance, StudentAttendance.session_id == AttendanceSession.id)
        .where(AttendanceSession.created_by_id == tutor.id)
        .group_by(AttendanceSession.id)
        .order_by(AttendanceSession.session_date.desc())
    )

    sessions = []
    total_attendances = 0
    for session, attended in result.all():
        attended = int(attended)
        total_attendances += attended
        sessions.append({
            "session_id": session.id,
            "title": session.title,
            "session_date": session.session_date,
            "attended_students": attended,
            "absent_students": max(0, total_students - attended),
            "attendance_rate": percentage(attended, total_students),
        })

    return {
        "tutor_id": tutor.id,
        "tutor_name": tutor.full_name,
        "total_students": total_students,
        "total_sessions": len(sessions),
        "overall_attendance_rate": percentage(total_attendances, len(sessions) * total_students),
        "sessions": sessions,
    }


async def weekly_participation(
    db: AsyncSession,
    actor: User,
    week: Optional[int] = None,
    tutor_id: Optional[UUID] = None,
) -> List[Dict[str, Any]]:
    """
    Sessions held, check-ins and distinct students per tutor.

    With a week number, only sessions dated inside that week of the active
    period count (week 1 starts on the period's start date).
    """
    tutor_id = _report_tutor(actor, tutor_id)

    query = (
        select(
            AttendanceSession.created_by_id,
            func.count(func.distinct(AttendanceSession.id)),
            func.count(StudentAttendance.id),
            func.count(func.distinct(StudentAttendance.student_id)),
        )
        .outerjoin(StudentAttendance, StudentAttendance.session_id == AttendanceSession.id)
        .group_by(AttendanceSession.created_by_id)
    )
    if tutor_id is not None:
        query = query.where(AttendanceSession.created_by_id == tutor_id)
    if week is not None:
        period = await require_active_period(db)
        week_start = period.start_date + timedelta(weeks=week - 1)
        query = query.where(
            AttendanceSession.session_date >= week_start,
            AttendanceSession.session_date < week_start + timedelta(weeks=1),
        )

    counts = (await db.execute(query)).all()
    if not counts:
        return []

    tutors = {
        user.id: user
        for user in (await db.execute(select(User).where(User.id.in_([row[0] for row in counts])))).scalars().all()
    }
    rows = [
        {
            "tutor_id": creator_id,
            "tutor": tutors[creator_id].username,
            "total_sessions": int(sessions),
            "total_attendances": int(attendances),
            "unique_students": int(students),
        }
        for creator_id, sessions, attendances, students in counts
    ]
    rows.sort(key=lambda r: r["tutor"])
    return rows


async def events_overview(
    db: AsyncSession,
    event_type_id: Optional[UUID] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Registered vs attended participants for each event, newest first"""
    attended = func.coalesce(
        func.sum(case((EventParticipant.status == ParticipantStatus.ATTENDED.value, 1), else_=0)), 0
    )
    query = (
        select(Event, EventType.name, func.count(EventParticipant.id), attended)
        .join(EventType, EventType.id == Event.event_type_id)
        .outerjoin(EventParticipant, EventParticipant.event_id == Event.id)
        .group_by(Event.id, EventType.name)
        .order_by(Event.event_date.desc())
    )
    if event_type_id is not None:
        query = query.where(Event.event_type_id == event_type_id)
    if status is not None:
        query = query.where(Event.status == EventStatus(status).value)

    return [
        {
            "event_id": event.id,
            "title": event.title,
            "event_date": event.event_date,
            "status": event.status,
            "event_type": type_name,
            "capacity": event.capacity,
            "registered": int(registered),
            "attended": int(attended_count),
            "attendance_rate": percentage(int(attended_count), int(registered)),
        }
        for event, type_name, registered, attended_count in (await db.execute(query)).all()
    ]
