"""
Points & Experience API Endpoints

POST /api/v1/points - Award or redeem points (admin, tutor)
GET /api/v1/points - Points transactions visible to the caller
GET /api/v1/points/balance - Points and experience balance (self, or a student in scope)
POST /api/v1/points/experience - Award experience (admin, tutor)
GET /api/v1/points/experience - Experience transactions (admin, tutor)
POST /api/v1/points/rollback - Roll back a ledger row (admin)
GET /api/v1/points/rollbacks - Rollback history (admin)
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_admin, require_roles
from mentorboard.api.schemas import ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import LedgerKind, UserRole
from mentorboard.services import ledger
from mentorboard.services.users import get_student_in_scope

router = APIRouter(prefix="/api/v1/points", tags=["points"])

require_awarder = require_roles(UserRole.ADMIN, UserRole.TUTOR)


class PointsTransactionOut(ORMModel):
    id: UUID
    student_id: UUID
    tutor_id: Optional[UUID] = None
    points: int
    type: str
    reason: Optional[str] = None
    point_reason_id: Optional[UUID] = None
    period_id: UUID
    rolled_back: bool
    created_at: datetime


class ExperienceTransactionOut(ORMModel):
    id: UUID
    student_id: UUID
    tutor_id: Optional[UUID] = None
    amount: int
    period_id: UUID
    rolled_back: bool
    created_at: datetime


class RollbackOut(ORMModel):
    id: UUID
    transaction_id: UUID
    transaction_type: str
    student_id: UUID
    admin_id: Optional[UUID] = None
    reason: str
    created_at: datetime


class AwardPointsRequest(BaseModel):
    student_id: UUID
    points: int = Field(..., description="Positive to award, negative to redeem")
    reason: Optional[str] = Field(None, max_length=500)
    point_reason_id: Optional[UUID] = None


class AwardPointsResponse(BaseModel):
    transaction: PointsTransactionOut
    new_balance: int


class AwardExperienceRequest(BaseModel):
    student_id: UUID
    amount: int


class RollbackRequest(BaseModel):
    transaction_id: UUID
    transaction_type: LedgerKind
    reason: str = Field(..., min_length=1)


class BalanceResponse(BaseModel):
    student_id: UUID
    points: int
    experience: int


@router.post("", response_model=AwardPointsResponse, status_code=201)
async def award_points(
    body: AwardPointsRequest,
    user: User = Depends(require_awarder),
    db: AsyncSession = Depends(get_db),
):
    transaction, balance = await ledger.award_points(
        db, user, body.student_id, body.points, body.reason, body.point_reason_id
    )
    return AwardPointsResponse(
        transaction=PointsTransactionOut.model_validate(transaction),
        new_balance=balance,
    )


@router.get("", response_model=List[PointsTransactionOut])
async def list_points(
    student_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.list_points_transactions(db, user, student_id, limit)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    student_id: Optional[UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Balances derived from the ledger for the active period"""
    target_id = user.id
    if student_id is not None and student_id != user.id:
        target_id = (await get_student_in_scope(db, user, student_id)).id

    return BalanceResponse(
        student_id=target_id,
        points=await ledger.get_points_balance(db, target_id),
        experience=await ledger.get_experience_balance(db, target_id),
    )


@router.post("/experience", response_model=ExperienceTransactionOut, status_code=201)
async def award_experience(
    body: AwardExperienceRequest,
    user: User = Depends(require_awarder),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.award_experience(db, user, body.student_id, body.amount)


@router.get("/experience", response_model=List[ExperienceTransactionOut])
async def list_experience(
    student_id: Optional[UUID] = Query(None),
    user: User = Depends(require_awarder),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.list_experience_transactions(db, user, student_id)


@router.post("/rollback", response_model=RollbackOut, status_code=201)
async def rollback(
    body: RollbackRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.rollback_transaction(
        db, admin, body.transaction_id, body.transaction_type, body.reason
    )


@router.get("/rollbacks", response_model=List[RollbackOut])
async def rollback_history(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await ledger.list_rollbacks(db)
