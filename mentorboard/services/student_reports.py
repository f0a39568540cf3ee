"""Performance reports tutors write about students of their group"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.exceptions import InvalidRequestError, NotFoundError, PermissionDeniedError
from mentorboard.models import StudentReport, User
from mentorboard.services.users import get_student_in_scope

logger = logging.getLogger(__name__)


async def list_reports_for_student(db: AsyncSession, actor: User, student_id: UUID) -> List[StudentReport]:
    student = await get_student_in_scope(db, actor, student_id)
    result = await db.execute(
        select(StudentReport)
        .where(StudentReport.student_id == student.id)
        .order_by(StudentReport.created_at.desc())
    )
    return list(result.scalars().all())


async def create_report(db: AsyncSession, actor: User, student_id: UUID, title: str, content: str) -> StudentReport:
    student = await get_student_in_scope(db, actor, student_id)
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise InvalidRequestError("Title and content are required")

    report = StudentReport(student_id=student.id, tutor_id=actor.id, title=title, content=content)
    db.add(report)
    await db.commit()
    logger.info(f"{actor.username} wrote report '{title}' for {student.username}")
    return report


async def _get_own_report(db: AsyncSession, actor: User, report_id: UUID) -> StudentReport:
    report = await db.get(StudentReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    if report.tutor_id != actor.id:
        raise PermissionDeniedError("Only the author can change this report")
    return report


async def update_report(
    db: AsyncSession,
    actor: User,
    report_id: UUID,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> StudentReport:
    report = await _get_own_report(db, actor, report_id)
    if title is not None:
        report.title = title.strip()
    if content is not None:
        report.content = content.strip()
    if not report.title or not report.content:
        raise InvalidRequestError("Title and content are required")
    await db.commit()
    return report


async def delete_report(db: AsyncSession, actor: User, report_id: UUID) -> None:
    report = await _get_own_report(db, actor, report_id)
    await db.delete(report)
    await db.commit()
