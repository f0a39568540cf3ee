"""
Attendance Service

Weekly attendance sessions with QR or manual check-in. A check-in writes the
attendance row and the attendance points award in one transaction; the
UNIQUE(session_id, student_id) index makes a second check-in impossible even
when two requests race.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.clock import to_naive_utc, utcnow
from mentorboard.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
)
from mentorboard.models import AttendanceSession, StudentAttendance, User
from mentorboard.models.enums import AttendanceSessionStatus, CheckInMethod, UserRole
from mentorboard.services import qr
from mentorboard.services.ledger import record_attendance_award
from mentorboard.services.periods import require_active_period
from mentorboard.services.users import get_student_in_scope, scope_tutor_id

logger = logging.getLogger(__name__)

SESSION_OWNER_ROLES = (UserRole.ADMIN.value, UserRole.TUTOR.value)
UPDATABLE_FIELDS = ("title", "description", "session_date", "status")


def _require_owner_role(actor: User):
    if actor.role not in SESSION_OWNER_ROLES:
        raise PermissionDeniedError("Only tutors and admins can manage attendance sessions")


async def _get_visible_session(db: AsyncSession, actor: User, session_id: UUID) -> AttendanceSession:
    session = await db.get(AttendanceSession, session_id)
    if session is None:
        raise NotFoundError("Attendance session not found")

    tutor_id = scope_tutor_id(actor)
    if tutor_id is not None and session.created_by_id != tutor_id:
        raise PermissionDeniedError("You do not have access to this session")
    return session


async def list_sessions(db: AsyncSession, actor: User) -> List[Tuple[AttendanceSession, int]]:
    """Sessions visible to the caller with their attendee counts, newest first"""
    counts = (
        select(StudentAttendance.session_id, func.count(StudentAttendance.id).label("attendees"))
        .group_by(StudentAttendance.session_id)
        .subquery()
    )
    query = (
        select(AttendanceSession, func.coalesce(counts.c.attendees, 0))
        .outerjoin(counts, counts.c.session_id == AttendanceSession.id)
        .order_by(AttendanceSession.session_date.desc())
    )

    tutor_id = scope_tutor_id(actor)
    if tutor_id is not None:
        query = query.where(AttendanceSession.created_by_id == tutor_id)

    result = await db.execute(query)
    return [(session, int(count)) for session, count in result.all()]


async def get_session_detail(
    db: AsyncSession, actor: User, session_id: UUID
) -> Tuple[AttendanceSession, List[Tuple[StudentAttendance, User]]]:
    """Session plus its check-ins (with the student) ordered by check-in time"""
    session = await _get_visible_session(db, actor, session_id)
    result = await db.execute(
        select(StudentAttendance, User)
        .join(User, User.id == StudentAttendance.student_id)
        .where(StudentAttendance.session_id == session.id)
        .order_by(StudentAttendance.check_in_time.desc())
    )
    return session, [(attendance, student) for attendance, student in result.all()]


async def create_session(
    db: AsyncSession,
    actor: User,
    title: str,
    session_date: datetime,
    description: Optional[str] = None,
    generate_qr: bool = False,
) -> AttendanceSession:
    """Create a session; with generate_qr the token is valid until the end of the session's week"""
    _require_owner_role(actor)
    title = (title or "").strip()
    if not title:
        raise InvalidRequestError("Session title is required")

    session_date = to_naive_utc(session_date)
    session = AttendanceSession(
        title=title,
        description=description,
        session_date=session_date,
        status=AttendanceSessionStatus.ACTIVE.value,
        created_by_id=actor.id,
    )
    if generate_qr:
        session.qr_code_token = qr.generate_token()
        session.qr_code_expires_at = qr.week_end_expiry(session_date)

    db.add(session)
    await db.commit()
    logger.info(f"{actor.username} created attendance session '{title}' (qr={generate_qr})")
    return session


async def update_session(db: AsyncSession, actor: User, session_id: UUID, **changes) -> AttendanceSession:
    _require_owner_role(actor)
    session = await _get_visible_session(db, actor, session_id)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            raise InvalidRequestError(f"Unknown field: {field}")
        if value is None:
            continue
        if field == "session_date":
            value = to_naive_utc(value)
        elif field == "status":
            value = AttendanceSessionStatus(value).value
        setattr(session, field, value)

    await db.commit()
    return session


async def delete_session(db: AsyncSession, actor: User, session_id: UUID) -> None:
    _require_owner_role(actor)
    session = await _get_visible_session(db, actor, session_id)
    await db.delete(session)
    await db.commit()
    logger.info(f"{actor.username} deleted attendance session {session_id}")


async def generate_session_qr(db: AsyncSession, actor: User, session_id: UUID) -> AttendanceSession:
    """Issue a fresh token (the old one stops working) expiring at the end of the session's week"""
    _require_owner_role(actor)
    session = await _get_visible_session(db, actor, session_id)
    session.qr_code_token = qr.generate_token()
    session.qr_code_expires_at = qr.week_end_expiry(session.session_date)
    await db.commit()
    logger.info(f"{actor.username} generated QR token for session {session_id}")
    return session


async def render_session_qr(db: AsyncSession, actor: User, session_id: UUID) -> str:
    """SVG of the session's check-in link"""
    session = await _get_visible_session(db, actor, session_id)
    if not session.qr_code_token:
        raise InvalidRequestError("This session has no QR code; generate one first")
    return qr.render_svg(qr.attendance_check_in_url(session.id, session.qr_code_token))


async def _find_session_by_token(db: AsyncSession, token: str, session_id: Optional[UUID] = None) -> AttendanceSession:
    """
    Resolve a live session from its token.

    Raises:
        TokenExpiredError: Unknown token, closed session or expired window
    """
    if not token:
        raise InvalidRequestError("Token is required")

    query = select(AttendanceSession).where(AttendanceSession.qr_code_token == token)
    if session_id is not None:
        query = query.where(AttendanceSession.id == session_id)
    session = (await db.execute(query)).scalar_one_or_none()

    if (
        session is None
        or session.status != AttendanceSessionStatus.ACTIVE.value
        or not qr.is_token_valid(session.qr_code_expires_at, utcnow())
    ):
        logger.warning(f"Rejected attendance token {token[:8]}...")
        raise TokenExpiredError()
    return session


async def verify_token(db: AsyncSession, token: str) -> Dict[str, Any]:
    """Summary of the session a token points to, for the check-in confirmation screen"""
    session = await _find_session_by_token(db, token)
    creator = await db.get(User, session.created_by_id)
    return {
        "id": session.id,
        "title": session.title,
        "description": session.description,
        "session_date": session.session_date,
        "expires_at": session.qr_code_expires_at,
        "tutor_name": creator.full_name if creator else None,
    }


async def _check_in(
    db: AsyncSession,
    session: AttendanceSession,
    student: User,
    method: CheckInMethod,
    awarded_by: Optional[UUID],
    notes: Optional[str] = None,
) -> StudentAttendance:
    period = await require_active_period(db)

    existing = await db.scalar(
        select(StudentAttendance.id).where(
            StudentAttendance.session_id == session.id,
            StudentAttendance.student_id == student.id,
        )
    )
    if existing is not None:
        raise ConflictError("Student has already checked in to this session", code="ALREADY_CHECKED_IN")

    attendance = StudentAttendance(
        session_id=session.id,
        student_id=student.id,
        check_in_method=method.value,
        check_in_time=utcnow(),
        notes=notes,
    )
    db.add(attendance)
    await record_attendance_award(db, student.id, awarded_by, period.id)

    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent check-in; neither row is kept
        await db.rollback()
        raise ConflictError("Student has already checked in to this session", code="ALREADY_CHECKED_IN")

    logger.info(f"{student.username} checked in to session {session.id} via {method.value}")
    return attendance


async def check_in_with_token(
    db: AsyncSession,
    student: User,
    token: str,
    session_id: Optional[UUID] = None,
) -> StudentAttendance:
    """
    Student self check-in by scanning the session QR code.

    Raises:
        PermissionDeniedError: Caller is not a student
        TokenExpiredError: Token unknown, session closed or expired
        ConflictError: Already checked in
        NoActivePeriodError: No active period to book the award in
    """
    if student.role != UserRole.STUDENT.value:
        raise PermissionDeniedError("Only students can check in with a QR code")

    session = await _find_session_by_token(db, token, session_id)
    return await _check_in(db, session, student, CheckInMethod.QR, session.created_by_id)


async def manual_check_in(
    db: AsyncSession,
    actor: User,
    session_id: UUID,
    student_id: UUID,
    notes: Optional[str] = None,
) -> StudentAttendance:
    """Staff check a student of their own group in without a QR code"""
    if actor.role == UserRole.STUDENT.value:
        raise PermissionDeniedError("Students cannot perform manual check-ins")

    session = await _get_visible_session(db, actor, session_id)
    student = await get_student_in_scope(db, actor, student_id)

    return await _check_in(db, session, student, CheckInMethod.MANUAL, actor.id, notes)


async def close_expired_sessions(db: AsyncSession) -> int:
    """Close ACTIVE sessions whose QR window has passed; returns how many were closed"""
    result = await db.execute(
        update(AttendanceSession)
        .where(
            AttendanceSession.status == AttendanceSessionStatus.ACTIVE.value,
            AttendanceSession.qr_code_expires_at.is_not(None),
            AttendanceSession.qr_code_expires_at < utcnow(),
        )
        .values(status=AttendanceSessionStatus.CLOSED.value)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def attendance_overview(db: AsyncSession) -> List[Dict[str, Any]]:
    """Per-session attendee counts across all tutors (admin report)"""
    result = await db.execute(
        select(
            AttendanceSession.id,
            AttendanceSession.title,
            AttendanceSession.session_date,
            User.username,
            func.count(StudentAttendance.id),
        )
        .join(User, User.id == AttendanceSession.created_by_id)
        .outerjoin(StudentAttendance, StudentAttendance.session_id == AttendanceSession.id)
        .group_by(AttendanceSession.id, AttendanceSession.title, AttendanceSession.session_date, User.username)
        .order_by(AttendanceSession.session_date.desc())
    )
    return [
        {
            "session_id": session_id,
            "title": title,
            "session_date": session_date,
            "tutor": tutor,
            "attendees": int(count),
        }
        for session_id, title, session_date, tutor, count in result.all()
    ]
