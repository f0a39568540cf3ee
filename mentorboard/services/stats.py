"""Dashboard statistics"""
import logging
from typing import Any, Dict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.models import EventParticipant, StudentAttendance, User
from mentorboard.services.leaderboard import build_leaderboard
from mentorboard.services.ledger import get_experience_balance, get_points_balance

logger = logging.getLogger(__name__)


async def student_stats(db: AsyncSession, student: User) -> Dict[str, Any]:
    """Balances for the active period, leaderboard rank and participation counts"""
    points = await get_points_balance(db, student.id)
    experience = await get_experience_balance(db, student.id)
    board = await build_leaderboard(db, student, size=1)

    attended_sessions = await db.scalar(
        select(func.count(StudentAttendance.id)).where(StudentAttendance.student_id == student.id)
    )
    events_joined = await db.scalar(
        select(func.count(EventParticipant.id)).where(EventParticipant.student_id == student.id)
    )

    return {
        "student_id": student.id,
        "points": points,
        "experience": experience,
        "rank": board["me"]["rank"] if board["me"] else None,
        "attended_sessions": int(attended_sessions or 0),
        "events_joined": int(events_joined or 0),
    }
