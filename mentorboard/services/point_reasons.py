"""Point reason catalogue maintained by admins"""
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.exceptions import ConflictError, InvalidRequestError, NotFoundError
from mentorboard.models import PointReason, PointsTransaction, User

logger = logging.getLogger(__name__)


async def get_point_reason(db: AsyncSession, reason_id: UUID) -> PointReason:
    reason = await db.get(PointReason, reason_id)
    if reason is None:
        raise NotFoundError("Point reason not found")
    return reason


async def list_point_reasons_with_usage(db: AsyncSession) -> List[Tuple[PointReason, int]]:
    """All reasons with the number of live (not rolled back) transactions using them"""
    usage = (
        select(PointsTransaction.point_reason_id, func.count(PointsTransaction.id).label("usage"))
        .where(PointsTransaction.rolled_back.is_(False))
        .group_by(PointsTransaction.point_reason_id)
        .subquery()
    )
    result = await db.execute(
        select(PointReason, func.coalesce(usage.c.usage, 0))
        .outerjoin(usage, usage.c.point_reason_id == PointReason.id)
        .order_by(PointReason.name)
    )
    return [(reason, int(count)) for reason, count in result.all()]


async def list_active_point_reasons(db: AsyncSession) -> List[PointReason]:
    result = await db.execute(
        select(PointReason).where(PointReason.is_active.is_(True)).order_by(PointReason.name)
    )
    return list(result.scalars().all())


async def create_point_reason(
    db: AsyncSession,
    admin: User,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
) -> PointReason:
    name = (name or "").strip()
    if not name:
        raise InvalidRequestError("Reason name is required")

    reason = PointReason(
        name=name,
        description=description.strip() if description else None,
        is_active=is_active,
        created_by_id=admin.id,
    )
    db.add(reason)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A point reason with this name already exists")

    logger.info(f"Point reason '{name}' created by {admin.username}")
    return reason


async def update_point_reason(db: AsyncSession, reason_id: UUID, **changes) -> PointReason:
    reason = await get_point_reason(db, reason_id)

    if changes.get("name") is not None:
        name = changes["name"].strip()
        if not name:
            raise InvalidRequestError("Reason name is required")
        reason.name = name
    if "description" in changes:
        reason.description = changes["description"]
    if changes.get("is_active") is not None:
        reason.is_active = changes["is_active"]

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A point reason with this name already exists")
    return reason


async def delete_point_reason(db: AsyncSession, reason_id: UUID) -> None:
    """Delete an unused reason; used ones must be deactivated instead"""
    reason = await get_point_reason(db, reason_id)

    used = await db.scalar(
        select(func.count(PointsTransaction.id)).where(PointsTransaction.point_reason_id == reason.id)
    )
    if used:
        raise ConflictError(
            f"This reason is used by {used} transactions; deactivate it instead",
            code="REASON_IN_USE",
        )

    await db.delete(reason)
    await db.commit()
    logger.info(f"Point reason '{reason.name}' deleted")

