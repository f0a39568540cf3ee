"""
Period Service

Periods partition the ledgers. Exactly one period is ACTIVE at a time;
activating one deactivates the rest in the same transaction.
"""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.clock import to_naive_utc
from mentorboard.exceptions import ConflictError, InvalidRequestError, NoActivePeriodError, NotFoundError
from mentorboard.models import Period
from mentorboard.models.enums import PeriodStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "start_date", "end_date", "total_weeks")


async def get_active_period(db: AsyncSession) -> Optional[Period]:
    """Return the active period, or None"""
    result = await db.execute(
        select(Period)
        .where(Period.status == PeriodStatus.ACTIVE.value)
        .order_by(Period.start_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def require_active_period(db: AsyncSession) -> Period:
    """
    Return the active period.

    Raises:
        NoActivePeriodError: If no period is active
    """
    period = await get_active_period(db)
    if period is None:
        raise NoActivePeriodError()
    return period


async def get_period(db: AsyncSession, period_id: UUID) -> Period:
    period = await db.get(Period, period_id)
    if period is None:
        raise NotFoundError("Period not found")
    return period


async def list_periods(db: AsyncSession, status: Optional[PeriodStatus] = None) -> List[Period]:
    query = select(Period).order_by(Period.start_date.desc())
    if status is not None:
        query = query.where(Period.status == PeriodStatus(status).value)
    result = await db.execute(query)
    return list(result.scalars().all())


def _check_dates(start_date: datetime, end_date: Optional[datetime]):
    if end_date is not None and end_date <= start_date:
        raise InvalidRequestError("End date must be after start date")


async def create_period(
    db: AsyncSession,
    name: str,
    start_date: datetime,
    end_date: Optional[datetime] = None,
    description: Optional[str] = None,
    total_weeks: Optional[int] = None,
) -> Period:
    """Create an INACTIVE period"""
    name = name.strip()
    if not name:
        raise InvalidRequestError("Period name is required")

    start_date = to_naive_utc(start_date)
    end_date = to_naive_utc(end_date) if end_date else None
    _check_dates(start_date, end_date)

    total_weeks = total_weeks or config.DEFAULT_PERIOD_WEEKS
    if total_weeks < 1:
        raise InvalidRequestError("Total weeks must be at least 1")

    period = Period(
        name=name,
        description=description,
        start_date=start_date,
        end_date=end_date,
        total_weeks=total_weeks,
        status=PeriodStatus.INACTIVE.value,
    )
    db.add(period)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A period with this name already exists")

    logger.info(f"Created period '{name}'")
    return period


async def update_period(db: AsyncSession, period_id: UUID, **changes) -> Period:
    period = await get_period(db, period_id)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            raise InvalidRequestError(f"Unknown field: {field}")
        if field in ("start_date", "end_date") and value is not None:
            value = to_naive_utc(value)
        if field == "name" and value is not None:
            value = value.strip()
        setattr(period, field, value)

    _check_dates(period.start_date, period.end_date)
    if period.total_weeks < 1:
        raise InvalidRequestError("Total weeks must be at least 1")

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A period with this name already exists")
    return period


async def delete_period(db: AsyncSession, period_id: UUID) -> None:
    """Delete a period; the active one is protected"""
    period = await get_period(db, period_id)
    if period.status == PeriodStatus.ACTIVE.value:
        raise ConflictError("The active period cannot be deleted")

    await db.delete(period)
    await db.commit()
    logger.info(f"Deleted period '{period.name}'")


async def activate_period(db: AsyncSession, period_id: UUID) -> Period:
    """
    Make a period the only active one.

    Cached student balances are rebuilt from the ledger of the activated
    period in the same transaction, so a fresh period starts every student
    at zero and re-activating an earlier one restores its totals.

    Returns:
        The activated period
    """
    from mentorboard.services.ledger import refresh_cached_balances

    period = await get_period(db, period_id)

    await db.execute(
        update(Period)
        .where(Period.id != period.id, Period.status == PeriodStatus.ACTIVE.value)
        .values(status=PeriodStatus.INACTIVE.value)
    )
    period.status = PeriodStatus.ACTIVE.value

    changed = await refresh_cached_balances(db, period.id)

    await db.commit()
    logger.info(f"Activated period '{period.name}' ({changed} cached balances rebuilt)")
    return period
