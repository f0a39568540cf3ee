"""
Points & Experience Ledger

Ledger rows are append-only; the only mutation is the rolled_back flag set by
an admin rollback, which is always paired with a TransactionRollback audit row.

Balances for a period are derived from the ledger:
    points     = max(0, sum(AWARD) - sum(REDEEM))
    experience = sum(experience amounts) + sum(AWARD points)
over rows that are not rolled back. users.points / users.experience are a
cache kept in step inside the same transaction as every ledger write.
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from mentorboard.models import (
    ExperienceTransaction,
    PointReason,
    PointsTransaction,
    TransactionRollback,
    User,
)
from mentorboard.models.enums import LedgerKind, TransactionType, UserRole
from mentorboard.services.periods import get_active_period, require_active_period
from mentorboard.services.users import get_student_in_scope, scope_tutor_id

logger = logging.getLogger(__name__)

AWARDING_ROLES = (UserRole.ADMIN.value, UserRole.TUTOR.value)


def net_points(awarded: int, redeemed: int) -> int:
    """Spendable balance; never negative"""
    return max(0, (awarded or 0) - (redeemed or 0))


def _require_awarding_role(actor: User):
    if actor.role not in AWARDING_ROLES:
        raise PermissionDeniedError("Only tutors and admins can award points or experience")


# Balances

async def get_points_balances(
    db: AsyncSession,
    student_ids: Iterable[UUID],
    period_id: Optional[UUID] = None,
) -> Dict[UUID, int]:
    """
    Points balance for many students in one query.

    Args:
        student_ids: Students to compute
        period_id: Period to sum over (defaults to the active period)

    Returns:
        Mapping student_id -> balance; every requested id is present
    """
    student_ids = list(student_ids)
    balances = {student_id: 0 for student_id in student_ids}
    if not student_ids:
        return balances

    if period_id is None:
        period = await get_active_period(db)
        if period is None:
            return balances
        period_id = period.id

    awarded = func.sum(case((PointsTransaction.type == TransactionType.AWARD.value, PointsTransaction.points), else_=0))
    redeemed = func.sum(case((PointsTransaction.type == TransactionType.REDEEM.value, PointsTransaction.points), else_=0))

    result = await db.execute(
        select(PointsTransaction.student_id, awarded, redeemed)
        .where(
            PointsTransaction.student_id.in_(student_ids),
            PointsTransaction.period_id == period_id,
            PointsTransaction.rolled_back.is_(False),
        )
        .group_by(PointsTransaction.student_id)
    )
    for student_id, award_total, redeem_total in result.all():
        balances[student_id] = net_points(award_total, redeem_total)
    return balances


async def get_points_balance(db: AsyncSession, student_id: UUID, period_id: Optional[UUID] = None) -> int:
    balances = await get_points_balances(db, [student_id], period_id)
    return balances[student_id]


async def get_experience_balances(
    db: AsyncSession,
    student_ids: Iterable[UUID],
    period_id: Optional[UUID] = None,
) -> Dict[UUID, int]:
    """Experience for many students: experience rows plus awarded points"""
    student_ids = list(student_ids)
    totals = {student_id: 0 for student_id in student_ids}
    if not student_ids:
        return totals

    if period_id is None:
        period = await get_active_period(db)
        if period is None:
            return totals
        period_id = period.id

    experience_rows = await db.execute(
        select(ExperienceTransaction.student_id, func.sum(ExperienceTransaction.amount))
        .where(
            ExperienceTransaction.student_id.in_(student_ids),
            ExperienceTransaction.period_id == period_id,
            ExperienceTransaction.rolled_back.is_(False),
        )
        .group_by(ExperienceTransaction.student_id)
    )
    for student_id, amount in experience_rows.all():
        totals[student_id] += int(amount or 0)

    award_rows = await db.execute(
        select(PointsTransaction.student_id, func.sum(PointsTransaction.points))
        .where(
            PointsTransaction.student_id.in_(student_ids),
            PointsTransaction.period_id == period_id,
            PointsTransaction.type == TransactionType.AWARD.value,
            PointsTransaction.rolled_back.is_(False),
        )
        .group_by(PointsTransaction.student_id)
    )
    for student_id, points in award_rows.all():
        totals[student_id] += int(points or 0)

    return totals


async def get_experience_balance(db: AsyncSession, student_id: UUID, period_id: Optional[UUID] = None) -> int:
    totals = await get_experience_balances(db, [student_id], period_id)
    return totals[student_id]


# Points

async def award_points(
    db: AsyncSession,
    actor: User,
    student_id: UUID,
    points: int,
    reason: Optional[str] = None,
    point_reason_id: Optional[UUID] = None,
) -> Tuple[PointsTransaction, int]:
    """
    Award (positive) or redeem (negative) points for a student.

    The ledger row and the cached balance update commit together.

    Returns:
        (transaction, new balance in the active period)

    Raises:
        PermissionDeniedError: Caller is not admin/tutor, or student is outside the tutor's group
        InvalidRequestError: Zero points, inactive reason, or redeeming more than the balance
        NoActivePeriodError: No active period
    """
    _require_awarding_role(actor)
    if not points:
        raise InvalidRequestError("Points must be a non-zero integer")

    student = await get_student_in_scope(db, actor, student_id)
    period = await require_active_period(db)

    if point_reason_id is not None:
        point_reason = await db.get(PointReason, point_reason_id)
        if point_reason is None or not point_reason.is_active:
            raise InvalidRequestError("Point reason is not available")
        reason = reason or point_reason.name

    amount = abs(points)
    if points > 0:
        tx_type = TransactionType.AWARD
    else:
        tx_type = TransactionType.REDEEM
        balance = await get_points_balance(db, student.id, period.id)
        if amount > balance:
            raise InvalidRequestError(
                f"Insufficient points: balance is {balance}",
                code="INSUFFICIENT_POINTS",
            )

    transaction = PointsTransaction(
        student_id=student.id,
        tutor_id=actor.id,
        points=amount,
        type=tx_type.value,
        reason=reason,
        point_reason_id=point_reason_id,
        period_id=period.id,
    )
    db.add(transaction)

    # Awards also grant the same amount of experience
    await db.execute(
        update(User)
        .where(User.id == student.id)
        .values(
            points=User.points + (amount if tx_type == TransactionType.AWARD else -amount),
            experience=User.experience + (amount if tx_type == TransactionType.AWARD else 0),
        )
    )
    await db.commit()

    new_balance = await get_points_balance(db, student.id, period.id)
    logger.info(
        f"{actor.username} {tx_type.value} {amount} points for {student.username} "
        f"(balance {new_balance})"
    )
    return transaction, new_balance


async def record_attendance_award(db: AsyncSession, student_id: UUID, actor_id: Optional[UUID], period_id: UUID) -> PointsTransaction:
    """
    Stage the attendance points award inside the caller's transaction.

    Nothing is committed here; the caller commits it together with the
    attendance row.
    """
    transaction = PointsTransaction(
        student_id=student_id,
        tutor_id=actor_id,
        points=config.ATTENDANCE_POINTS,
        type=TransactionType.AWARD.value,
        reason=config.ATTENDANCE_REASON,
        period_id=period_id,
    )
    db.add(transaction)
    await db.execute(
        update(User)
        .where(User.id == student_id)
        .values(
            points=User.points + config.ATTENDANCE_POINTS,
            experience=User.experience + config.ATTENDANCE_POINTS,
        )
    )
    return transaction


async def list_points_transactions(
    db: AsyncSession,
    actor: User,
    student_id: Optional[UUID] = None,
    limit: int = 100,
) -> List[PointsTransaction]:
    """Admins see all, staff their group's students, students their own rows"""
    query = select(PointsTransaction).order_by(PointsTransaction.created_at.desc()).limit(limit)

    if actor.role == UserRole.STUDENT.value:
        query = query.where(PointsTransaction.student_id == actor.id)
    else:
        tutor_id = scope_tutor_id(actor)
        if tutor_id is not None:
            query = query.join(User, User.id == PointsTransaction.student_id).where(User.tutor_id == tutor_id)
        if student_id is not None:
            query = query.where(PointsTransaction.student_id == student_id)

    result = await db.execute(query)
    return list(result.scalars().all())


# Experience

async def award_experience(db: AsyncSession, actor: User, student_id: UUID, amount: int) -> ExperienceTransaction:
    """Add (or with a negative amount, remove) experience for a student"""
    _require_awarding_role(actor)
    if not amount:
        raise InvalidRequestError("Experience amount must be a non-zero integer")

    student = await get_student_in_scope(db, actor, student_id)
    period = await require_active_period(db)

    transaction = ExperienceTransaction(
        student_id=student.id,
        tutor_id=actor.id,
        amount=amount,
        period_id=period.id,
    )
    db.add(transaction)
    await db.execute(
        update(User).where(User.id == student.id).values(experience=User.experience + amount)
    )
    await db.commit()

    logger.info(f"{actor.username} gave {amount} experience to {student.username}")
    return transaction


async def list_experience_transactions(
    db: AsyncSession,
    actor: User,
    student_id: Optional[UUID] = None,
) -> List[ExperienceTransaction]:
    """Admins see everything; tutors the latest rows for their own students"""
    query = select(ExperienceTransaction).order_by(ExperienceTransaction.created_at.desc())

    tutor_id = scope_tutor_id(actor)
    if tutor_id is not None:
        query = (
            query.join(User, User.id == ExperienceTransaction.student_id)
            .where(User.tutor_id == tutor_id)
            .limit(config.EXPERIENCE_HISTORY_LIMIT)
        )
    if student_id is not None:
        query = query.where(ExperienceTransaction.student_id == student_id)

    result = await db.execute(query)
    return list(result.scalars().all())


# Rollbacks

async def rollback_transaction(
    db: AsyncSession,
    admin: User,
    transaction_id: UUID,
    transaction_type: LedgerKind,
    reason: str,
) -> TransactionRollback:
    """
    Reverse a ledger row.

    Marks the row rolled back, writes the audit row and, for rows of the
    active period, recomputes the student's cached balance from the ledger,
    all in one transaction. A row can be rolled back once.

    Raises:
        InvalidRequestError: Missing reason
        NotFoundError: Unknown transaction
        ConflictError: Already rolled back
    """
    kind = LedgerKind(transaction_type)
    reason = (reason or "").strip()
    if not reason:
        raise InvalidRequestError("A rollback reason is required")

    existing = await db.scalar(
        select(TransactionRollback.id).where(
            TransactionRollback.transaction_id == transaction_id,
            TransactionRollback.transaction_type == kind.value,
        )
    )
    if existing is not None:
        raise ConflictError("This transaction has already been rolled back", code="ALREADY_ROLLED_BACK")

    model = PointsTransaction if kind == LedgerKind.POINTS else ExperienceTransaction
    transaction = await db.get(model, transaction_id)
    if transaction is None:
        raise NotFoundError(f"{kind.value.title()} transaction not found")
    if transaction.rolled_back:
        raise ConflictError("This transaction has already been rolled back", code="ALREADY_ROLLED_BACK")

    student = await db.get(User, transaction.student_id)
    transaction.rolled_back = True

    # The cache only mirrors the active period
    active = await get_active_period(db)
    if active is not None and transaction.period_id == active.id:
        await db.flush()
        student.points = await get_points_balance(db, student.id, active.id)
        student.experience = await get_experience_balance(db, student.id, active.id)

    rollback = TransactionRollback(
        transaction_id=transaction.id,
        transaction_type=kind.value,
        student_id=student.id,
        admin_id=admin.id,
        reason=reason,
    )
    db.add(rollback)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("This transaction has already been rolled back", code="ALREADY_ROLLED_BACK")

    logger.info(f"{admin.username} rolled back {kind.value} transaction {transaction.id}: {reason}")
    return rollback


async def list_rollbacks(db: AsyncSession, limit: int = 200) -> List[TransactionRollback]:
    result = await db.execute(
        select(TransactionRollback).order_by(TransactionRollback.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def refresh_cached_balances(db: AsyncSession, period_id: UUID) -> int:
    """
    Stage cached balances of every student rebuilt from the ledger of a period.

    Nothing is committed here; the caller commits it together with its own
    changes.

    Returns:
        Number of students whose cache changed
    """
    result = await db.execute(select(User).where(User.role == UserRole.STUDENT.value))
    students = list(result.scalars().all())
    ids = [student.id for student in students]
    points = await get_points_balances(db, ids, period_id)
    experience = await get_experience_balances(db, ids, period_id)

    changed = 0
    for student in students:
        if student.points != points[student.id] or student.experience != experience[student.id]:
            student.points = points[student.id]
            student.experience = experience[student.id]
            changed += 1
    return changed


async def reconcile_cached_balances(db: AsyncSession) -> int:
    """
    Overwrite the cached balances of every student with ledger totals for
    the active period.

    Returns:
        Number of students whose cache changed
    """
    period = await get_active_period(db)
    if period is None:
        return 0

    changed = await refresh_cached_balances(db, period.id)
    await db.commit()
    return changed
