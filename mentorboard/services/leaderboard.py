"""Leaderboard - students ranked by experience earned in the active period"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.clock import utcnow
from mentorboard.models import ExperienceTransaction, PointsTransaction, User
from mentorboard.models.enums import TransactionType, UserRole
from mentorboard.services.qr import week_end_expiry
from mentorboard.services.ledger import get_experience_balances, get_points_balances
from mentorboard.services.periods import get_active_period

logger = logging.getLogger(__name__)


def rank_entries(entries: List[Dict[str, Any]], key: str = "experience") -> List[Dict[str, Any]]:
    """
    Sort by the given field (desc, then username) and assign 1-based ranks.

    Ties share the rank of the first tied entry.
    """
    ordered = sorted(entries, key=lambda e: (-e[key], e["username"]))
    previous = None
    rank = 0
    for position, entry in enumerate(ordered, start=1):
        if entry[key] != previous:
            rank = position
            previous = entry[key]
        entry["rank"] = rank
    return ordered


async def build_leaderboard(
    db: AsyncSession,
    viewer: User,
    tutor_id: Optional[UUID] = None,
    size: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build the leaderboard for the active period.

    Args:
        viewer: Caller; students get their own entry even outside the top N
        tutor_id: Restrict to one tutor's group
        size: Number of entries to return (default LEADERBOARD_SIZE)

    Returns:
        {"period": ..., "entries": [...], "me": entry or None}
    """
    size = size or config.LEADERBOARD_SIZE
    period = await get_active_period(db)

    query = select(User).where(User.role == UserRole.STUDENT.value, User.is_active.is_(True))
    if tutor_id is not None:
        query = query.where(User.tutor_id == tutor_id)
    result = await db.execute(query)
    students = list(result.scalars().all())

    if period is None or not students:
        return {"period": None if period is None else period.name, "entries": [], "me": None}

    ids = [student.id for student in students]
    experience = await get_experience_balances(db, ids, period.id)
    points = await get_points_balances(db, ids, period.id)

    entries = rank_entries([
        {
            "student_id": student.id,
            "username": student.username,
            "full_name": student.full_name,
            "experience": experience[student.id],
            "points": points[student.id],
        }
        for student in students
    ])

    me = None
    if viewer.role == UserRole.STUDENT.value:
        me = next((entry for entry in entries if entry["student_id"] == viewer.id), None)

    return {"period": period.name, "entries": entries[:size], "me": me}


def week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999 of the week containing now"""
    monday = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return monday, week_end_expiry(monday)


async def weekly_top_earners(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Students ranked by experience earned in the current calendar week.

    Awarded points count as experience too, as in the period balances.
    Rolled-back rows are ignored; students who earned nothing this week are
    left out.
    """
    week_start, week_end = week_bounds(now or utcnow())

    points_rows = await db.execute(
        select(PointsTransaction.student_id, func.sum(PointsTransaction.points))
        .where(
            PointsTransaction.type == TransactionType.AWARD.value,
            PointsTransaction.rolled_back.is_(False),
            PointsTransaction.created_at >= week_start,
            PointsTransaction.created_at <= week_end,
        )
        .group_by(PointsTransaction.student_id)
    )
    weekly_points = {student_id: int(total or 0) for student_id, total in points_rows.all()}

    experience_rows = await db.execute(
        select(ExperienceTransaction.student_id, func.sum(ExperienceTransaction.amount))
        .where(
            ExperienceTransaction.rolled_back.is_(False),
            ExperienceTransaction.created_at >= week_start,
            ExperienceTransaction.created_at <= week_end,
        )
        .group_by(ExperienceTransaction.student_id)
    )
    weekly_experience = {student_id: int(total or 0) for student_id, total in experience_rows.all()}

    earner_ids = set(weekly_points) | set(weekly_experience)
    entries = []
    if earner_ids:
        result = await db.execute(
            select(User).where(
                User.id.in_(earner_ids),
                User.role == UserRole.STUDENT.value,
                User.is_active.is_(True),
            )
        )
        for student in result.scalars().all():
            points = weekly_points.get(student.id, 0)
            experience = points + weekly_experience.get(student.id, 0)
            if points <= 0 and experience <= 0:
                continue
            entries.append({
                "student_id": student.id,
                "username": student.username,
                "full_name": student.full_name,
                "tutor_id": student.tutor_id,
                "weekly_points": points,
                "weekly_experience": experience,
                "total_experience": student.experience,
            })

    return {
        "week_start": week_start,
        "week_end": week_end,
        "entries": rank_entries(entries, key="weekly_experience"),
    }
