"""
Syllabus Service

Classrooms, syllabi with ordered lessons, per-classroom teaching progress and
the admin tracking report.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.clock import utcnow
from mentorboard.exceptions import InvalidRequestError, NotFoundError, PermissionDeniedError
from mentorboard.models import Classroom, ClassroomLessonProgress, Syllabus, SyllabusLesson, User
from mentorboard.models.enums import UserRole
from mentorboard.services import qr

logger = logging.getLogger(__name__)

AUTHOR_ROLES = (UserRole.ADMIN.value, UserRole.TUTOR.value)


def progress_percentage(taught: int, total: int) -> int:
    """Share of taught lessons, rounded to a whole percent"""
    if total <= 0:
        return 0
    return round(min(taught, total) / total * 100)


def _require_author_role(actor: User):
    if actor.role not in AUTHOR_ROLES:
        raise PermissionDeniedError("Only tutors and admins can manage syllabi")


def _require_owner(actor: User, syllabus: Syllabus):
    if actor.role != UserRole.ADMIN.value and syllabus.created_by_id != actor.id:
        raise PermissionDeniedError("Only the syllabus creator or an admin can change it")


# Classrooms

async def create_classroom(
    db: AsyncSession,
    actor: User,
    name: str,
    description: Optional[str] = None,
    tutor_id: Optional[UUID] = None,
) -> Classroom:
    """Tutors create classrooms for themselves; admins may create one for any tutor"""
    _require_author_role(actor)
    name = (name or "").strip()
    if not name:
        raise InvalidRequestError("Classroom name is required")

    owner_id = actor.id
    if actor.role == UserRole.ADMIN.value and tutor_id is not None:
        tutor = await db.get(User, tutor_id)
        if tutor is None or tutor.role != UserRole.TUTOR.value:
            raise InvalidRequestError("Tutor not found")
        owner_id = tutor.id

    classroom = Classroom(name=name, description=description, tutor_id=owner_id)
    db.add(classroom)
    await db.commit()
    logger.info(f"{actor.username} created classroom '{name}'")
    return classroom


async def list_classrooms(db: AsyncSession, actor: User) -> List[Classroom]:
    query = select(Classroom).order_by(Classroom.name)
    if actor.role != UserRole.ADMIN.value:
        query = query.where(Classroom.tutor_id == actor.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_classroom(db: AsyncSession, actor: User, classroom_id: UUID) -> Classroom:
    classroom = await db.get(Classroom, classroom_id)
    if classroom is None:
        raise NotFoundError("Classroom not found")
    if actor.role != UserRole.ADMIN.value and classroom.tutor_id != actor.id:
        raise PermissionDeniedError("This classroom belongs to another tutor")
    return classroom


# Syllabi

async def _get_syllabus(db: AsyncSession, syllabus_id: UUID) -> Syllabus:
    syllabus = await db.get(Syllabus, syllabus_id)
    if syllabus is None:
        raise NotFoundError("Syllabus not found")
    return syllabus


async def _lessons(db: AsyncSession, syllabus_id: UUID) -> List[SyllabusLesson]:
    result = await db.execute(
        select(SyllabusLesson)
        .where(SyllabusLesson.syllabus_id == syllabus_id)
        .order_by(SyllabusLesson.order_index, SyllabusLesson.created_at)
    )
    return list(result.scalars().all())


async def list_syllabi(db: AsyncSession, actor: User) -> List[Tuple[Syllabus, int]]:
    """Admins see all; tutors their own plus global syllabi. Each with its lesson count."""
    _require_author_role(actor)
    lesson_counts = (
        select(SyllabusLesson.syllabus_id, func.count(SyllabusLesson.id).label("lessons"))
        .group_by(SyllabusLesson.syllabus_id)
        .subquery()
    )
    query = (
        select(Syllabus, func.coalesce(lesson_counts.c.lessons, 0))
        .outerjoin(lesson_counts, lesson_counts.c.syllabus_id == Syllabus.id)
        .order_by(Syllabus.created_at.desc())
    )
    if actor.role != UserRole.ADMIN.value:
        query = query.where(or_(Syllabus.created_by_id == actor.id, Syllabus.is_global.is_(True)))

    result = await db.execute(query)
    return [(syllabus, int(count)) for syllabus, count in result.all()]


def _check_visible(actor: User, syllabus: Syllabus):
    """Admins see every syllabus; others their own and global ones"""
    if (
        actor.role != UserRole.ADMIN.value
        and syllabus.created_by_id != actor.id
        and not syllabus.is_global
    ):
        raise PermissionDeniedError("You do not have access to this syllabus")


async def get_syllabus(db: AsyncSession, actor: User, syllabus_id: UUID) -> Tuple[Syllabus, List[SyllabusLesson]]:
    _require_author_role(actor)
    syllabus = await _get_syllabus(db, syllabus_id)
    _check_visible(actor, syllabus)
    return syllabus, await _lessons(db, syllabus.id)


async def get_syllabus_by_share_token(db: AsyncSession, share_token: str) -> Tuple[Syllabus, List[SyllabusLesson]]:
    """Public read-only view; only published syllabi are reachable"""
    result = await db.execute(
        select(Syllabus).where(Syllabus.share_token == share_token, Syllabus.is_published.is_(True))
    )
    syllabus = result.scalar_one_or_none()
    if syllabus is None:
        raise NotFoundError("Syllabus not found or not published")
    return syllabus, await _lessons(db, syllabus.id)


async def create_syllabus(
    db: AsyncSession,
    actor: User,
    title: str,
    description: Optional[str] = None,
    lessons: Optional[List[Dict[str, Any]]] = None,
    is_global: bool = False,
) -> Syllabus:
    """
    Create a syllabus with its lessons in one transaction.

    Lessons keep the order they are given in unless an explicit
    order_index is supplied.
    """
    _require_author_role(actor)
    title = (title or "").strip()
    if not title:
        raise InvalidRequestError("Syllabus title is required")

    syllabus = Syllabus(
        title=title,
        description=description,
        is_global=is_global and actor.role == UserRole.ADMIN.value,
        created_by_id=actor.id,
    )
    db.add(syllabus)
    await db.flush()

    for position, lesson in enumerate(lessons or []):
        lesson_title = (lesson.get("title") or "").strip()
        if not lesson_title:
            raise InvalidRequestError("Every lesson needs a title")
        db.add(SyllabusLesson(
            syllabus_id=syllabus.id,
            title=lesson_title,
            description=lesson.get("description"),
            order_index=lesson.get("order_index", position),
        ))

    await db.commit()
    logger.info(f"{actor.username} created syllabus '{title}' with {len(lessons or [])} lessons")
    return syllabus


async def update_syllabus(db: AsyncSession, actor: User, syllabus_id: UUID, **changes) -> Syllabus:
    syllabus = await _get_syllabus(db, syllabus_id)
    _require_owner(actor, syllabus)

    for field in ("title", "description", "is_published"):
        if changes.get(field) is not None:
            setattr(syllabus, field, changes[field])
    if changes.get("is_global") is not None and actor.role == UserRole.ADMIN.value:
        syllabus.is_global = changes["is_global"]

    await db.commit()
    return syllabus


async def delete_syllabus(db: AsyncSession, actor: User, syllabus_id: UUID) -> None:
    syllabus = await _get_syllabus(db, syllabus_id)
    _require_owner(actor, syllabus)
    await db.delete(syllabus)
    await db.commit()
    logger.info(f"{actor.username} deleted syllabus {syllabus_id}")


async def generate_share_token(db: AsyncSession, actor: User, syllabus_id: UUID) -> Syllabus:
    """Create a share token and publish the syllabus"""
    syllabus = await _get_syllabus(db, syllabus_id)
    _require_owner(actor, syllabus)
    syllabus.share_token = qr.generate_token()
    syllabus.is_published = True
    await db.commit()
    return syllabus


# Lessons

async def add_lesson(
    db: AsyncSession,
    actor: User,
    syllabus_id: UUID,
    title: str,
    description: Optional[str] = None,
) -> SyllabusLesson:
    """Append a lesson after the current last one"""
    syllabus = await _get_syllabus(db, syllabus_id)
    _require_owner(actor, syllabus)
    title = (title or "").strip()
    if not title:
        raise InvalidRequestError("Lesson title is required")

    last_index = await db.scalar(
        select(func.max(SyllabusLesson.order_index)).where(SyllabusLesson.syllabus_id == syllabus.id)
    )
    lesson = SyllabusLesson(
        syllabus_id=syllabus.id,
        title=title,
        description=description,
        order_index=0 if last_index is None else last_index + 1,
    )
    db.add(lesson)
    await db.commit()
    return lesson


async def _get_owned_lesson(db: AsyncSession, actor: User, lesson_id: UUID) -> SyllabusLesson:
    lesson = await db.get(SyllabusLesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    _check_visible(actor, await _get_syllabus(db, lesson.syllabus_id))
    syllabus = await _get_syllabus(db, lesson.syllabus_id)
    _require_owner(actor, syllabus)
    return lesson


async def update_lesson(db: AsyncSession, actor: User, lesson_id: UUID, **changes) -> SyllabusLesson:
    lesson = await _get_owned_lesson(db, actor, lesson_id)
    for field in ("title", "description", "order_index"):
        if changes.get(field) is not None:
            setattr(lesson, field, changes[field])
    await db.commit()
    return lesson


async def delete_lesson(db: AsyncSession, actor: User, lesson_id: UUID) -> None:
    lesson = await _get_owned_lesson(db, actor, lesson_id)
    await db.delete(lesson)
    await db.commit()


# Progress

async def set_lesson_progress(
    db: AsyncSession,
    actor: User,
    classroom_id: UUID,
    lesson_id: UUID,
    is_taught: bool,
    notes: Optional[str] = None,
) -> ClassroomLessonProgress:
    """
    Upsert the progress row for (classroom, lesson).

    taught_date is stamped when a lesson becomes taught and cleared when it
    is unmarked.
    """
    classroom = await _get_classroom(db, actor, classroom_id)
    lesson = await db.get(SyllabusLesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")

    result = await db.execute(
        select(ClassroomLessonProgress).where(
            ClassroomLessonProgress.classroom_id == classroom.id,
            ClassroomLessonProgress.lesson_id == lesson.id,
        )
    )
    progress = result.scalar_one_or_none()
    if progress is None:
        progress = ClassroomLessonProgress(
            classroom_id=classroom.id,
            syllabus_id=lesson.syllabus_id,
            lesson_id=lesson.id,
        )
        db.add(progress)

    if is_taught and not progress.is_taught:
        progress.taught_date = utcnow()
    elif not is_taught:
        progress.taught_date = None
    progress.is_taught = is_taught
    if notes is not None:
        progress.notes = notes

    await db.commit()
    return progress


async def get_classroom_progress(db: AsyncSession, actor: User, classroom_id: UUID) -> Dict[str, Any]:
    """Progress of one classroom grouped per syllabus"""
    classroom = await _get_classroom(db, actor, classroom_id)
    result = await db.execute(
        select(ClassroomLessonProgress, SyllabusLesson, Syllabus)
        .join(SyllabusLesson, SyllabusLesson.id == ClassroomLessonProgress.lesson_id)
        .join(Syllabus, Syllabus.id == ClassroomLessonProgress.syllabus_id)
        .where(ClassroomLessonProgress.classroom_id == classroom.id)
        .order_by(Syllabus.title, SyllabusLesson.order_index)
    )

    syllabi: Dict[UUID, Dict[str, Any]] = {}
    for progress, lesson, syllabus in result.all():
        entry = syllabi.setdefault(syllabus.id, {
            "syllabus_id": syllabus.id,
            "title": syllabus.title,
            "lessons": [],
        })
        entry["lessons"].append({
            "lesson_id": lesson.id,
            "title": lesson.title,
            "order_index": lesson.order_index,
            "is_taught": progress.is_taught,
            "taught_date": progress.taught_date,
            "notes": progress.notes,
        })

    return {"classroom_id": classroom.id, "name": classroom.name, "syllabi": list(syllabi.values())}


async def syllabus_tracking_report(db: AsyncSession) -> List[Dict[str, Any]]:
    """Per syllabus: lesson total, distinct taught lessons and completion percentage"""
    totals = dict((await db.execute(
        select(SyllabusLesson.syllabus_id, func.count(SyllabusLesson.id)).group_by(SyllabusLesson.syllabus_id)
    )).all())
    taught = dict((await db.execute(
        select(ClassroomLessonProgress.syllabus_id, func.count(func.distinct(ClassroomLessonProgress.lesson_id)))
        .where(ClassroomLessonProgress.is_taught.is_(True))
        .group_by(ClassroomLessonProgress.syllabus_id)
    )).all())

    result = await db.execute(
        select(Syllabus, User.username)
        .join(User, User.id == Syllabus.created_by_id)
        .order_by(Syllabus.created_at.desc())
    )
    report = []
    for syllabus, author in result.all():
        total = int(totals.get(syllabus.id, 0))
        taught_count = int(taught.get(syllabus.id, 0))
        report.append({
            "syllabus_id": syllabus.id,
            "title": syllabus.title,
            "is_global": syllabus.is_global,
            "tutor": author,
            "total_lessons": total,
            "taught_lessons": taught_count,
            "progress_percentage": progress_percentage(taught_count, total),
        })
    return report
