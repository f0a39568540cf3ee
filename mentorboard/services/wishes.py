"""Student wishes and their admin review"""
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.exceptions import InvalidRequestError, NotFoundError, PermissionDeniedError
from mentorboard.models import User, Wish
from mentorboard.models.enums import UserRole, WishStatus
from mentorboard.services.periods import require_active_period

logger = logging.getLogger(__name__)


async def list_own_wishes(db: AsyncSession, student: User) -> List[Wish]:
    result = await db.execute(
        select(Wish).where(Wish.student_id == student.id).order_by(Wish.created_at.desc())
    )
    return list(result.scalars().all())


async def create_wish(db: AsyncSession, student: User, title: str, description: str) -> Wish:
    if student.role != UserRole.STUDENT.value:
        raise PermissionDeniedError("Only students can submit wishes")

    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description:
        raise InvalidRequestError("Title and description are required")

    period = await require_active_period(db)
    wish = Wish(
        title=title,
        description=description,
        student_id=student.id,
        period_id=period.id,
        status=WishStatus.PENDING.value,
    )
    db.add(wish)
    await db.commit()
    logger.info(f"{student.username} submitted wish '{title}'")
    return wish


async def list_all_wishes(db: AsyncSession, status: Optional[WishStatus] = None) -> List[Tuple[Wish, User]]:
    query = (
        select(Wish, User)
        .join(User, User.id == Wish.student_id)
        .order_by(Wish.created_at.desc())
    )
    if status is not None:
        query = query.where(Wish.status == WishStatus(status).value)
    result = await db.execute(query)
    return [(wish, student) for wish, student in result.all()]


async def get_wish(db: AsyncSession, wish_id: UUID) -> Wish:
    wish = await db.get(Wish, wish_id)
    if wish is None:
        raise NotFoundError("Wish not found")
    return wish


async def review_wish(
    db: AsyncSession,
    admin: User,
    wish_id: UUID,
    status: Optional[WishStatus] = None,
    admin_note: Optional[str] = None,
) -> Wish:
    wish = await get_wish(db, wish_id)
    if status is not None:
        wish.status = WishStatus(status).value
    if admin_note is not None:
        wish.admin_note = admin_note
    await db.commit()
    logger.info(f"{admin.username} reviewed wish {wish.id} -> {wish.status}")
    return wish
