"""
Leaderboard API Endpoints

GET /api/v1/leaderboard - Top students by experience in the active period
GET /api/v1/leaderboard/group - Same, restricted to the caller's group (staff)
GET /api/v1/leaderboard/weekly - Top earners of the current calendar week
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_staff
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.services.leaderboard import build_leaderboard, weekly_top_earners
from mentorboard.services.users import scope_tutor_id

router = APIRouter(prefix="/api/v1/leaderboard", tags=["leaderboard"])


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: UUID
    username: str
    full_name: str
    experience: int
    points: int


class LeaderboardResponse(BaseModel):
    period: Optional[str] = None
    entries: List[LeaderboardEntry]
    me: Optional[LeaderboardEntry] = None


class WeeklyEarner(BaseModel):
    rank: int
    student_id: UUID
    username: str
    full_name: str
    tutor_id: Optional[UUID] = None
    weekly_points: int
    weekly_experience: int
    total_experience: int


class WeeklyTopEarnersResponse(BaseModel):
    week_start: datetime
    week_end: datetime
    entries: List[WeeklyEarner]


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    size: Optional[int] = Query(None, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await build_leaderboard(db, user, size=size)


@router.get("/group", response_model=LeaderboardResponse)
async def group_leaderboard(
    tutor_id: Optional[UUID] = Query(None, description="Tutor whose group to rank (admin only)"),
    size: Optional[int] = Query(None, ge=1, le=200),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    scoped = scope_tutor_id(user)
    return await build_leaderboard(db, user, tutor_id=scoped or tutor_id or user.id, size=size)


@router.get("/weekly", response_model=WeeklyTopEarnersResponse)
async def weekly_leaderboard(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await weekly_top_earners(db)
