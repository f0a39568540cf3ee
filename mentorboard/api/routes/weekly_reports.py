"""
Weekly Report API Endpoints

Questions:
    GET /api/v1/weekly-reports/questions - All questions (admin, filters)
    GET /api/v1/weekly-reports/questions/mine - Active questions for the caller's role
    POST /api/v1/weekly-reports/questions - Create (admin)
    PATCH|DELETE /api/v1/weekly-reports/questions/{question_id} - Edit / delete (admin)

Reports:
    GET /api/v1/weekly-reports/mine - Caller's reports in the active period
    POST /api/v1/weekly-reports - File a report (tutor, assistant)
    GET /api/v1/weekly-reports - All reports (admin)
    GET|PATCH|DELETE /api/v1/weekly-reports/{report_id} - Detail / edit / delete
    POST /api/v1/weekly-reports/{report_id}/review - Approve or reject (admin)

Statistics (admin):
    GET /api/v1/weekly-reports/stats?period_id=
    GET /api/v1/weekly-reports/performance?period_id=
    GET /api/v1/weekly-reports/performance/{user_id}?period_id=
"""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import get_current_user, require_admin, require_roles
from mentorboard.api.schemas import MessageResponse, ORMModel, UserSummary
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.models.enums import QuestionResponse, QuestionType, UserRole, WeeklyReportStatus
from mentorboard.services import weekly_reports as report_service
from mentorboard.services.periods import require_active_period

router = APIRouter(prefix="/api/v1/weekly-reports", tags=["weekly-reports"])

require_reporter = require_roles(UserRole.TUTOR, UserRole.ASSISTANT)


class QuestionOut(ORMModel):
    id: UUID
    text: str
    type: str
    target_role: str
    order_index: int
    is_active: bool
    created_at: datetime


class QuestionCreate(BaseModel):
    text: str = Field(..., min_length=1)
    type: QuestionType
    target_role: UserRole
    order_index: Optional[int] = Field(None, ge=0)


class QuestionUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1)
    type: Optional[QuestionType] = None
    target_role: Optional[UserRole] = None
    order_index: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class AnswerIn(BaseModel):
    question_id: UUID
    response: QuestionResponse


class ReportOut(ORMModel):
    id: UUID
    user_id: UUID
    period_id: UUID
    week_number: int
    status: str
    submission_date: Optional[datetime] = None
    review_date: Optional[datetime] = None
    reviewed_by_id: Optional[UUID] = None
    review_notes: Optional[str] = None
    points_awarded: int
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ReportWithUser(ReportOut):
    user: UserSummary


class AnswerOut(BaseModel):
    question_id: UUID
    text: str
    type: str
    response: str


class ReportDetail(ReportOut):
    responses: List[AnswerOut]


class ReportCreate(BaseModel):
    week_number: int = Field(..., ge=1)
    responses: List[AnswerIn] = []
    comments: Optional[str] = None
    submit: bool = False


class ReportUpdate(BaseModel):
    responses: Optional[List[AnswerIn]] = None
    comments: Optional[str] = None
    status: Optional[WeeklyReportStatus] = None


class ReportReview(BaseModel):
    status: WeeklyReportStatus
    review_notes: Optional[str] = None
    points_awarded: Optional[int] = Field(None, ge=0)


class ReportStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_role: Dict[str, int]
    by_week: Dict[int, int]
    total_points_awarded: int


class WeekPerformance(BaseModel):
    week_number: int
    status: str
    points_awarded: int
    completion_score: int
    suggested_points: int


class Performance(BaseModel):
    user_id: UUID
    username: str
    role: str
    period_id: UUID
    total_reports: int
    submitted_reports: int
    approved_reports: int
    total_points_earned: int
    average_completion_score: int
    weeks: List[WeekPerformance]


def _answers(items: Optional[List[AnswerIn]]) -> Optional[Dict[UUID, QuestionResponse]]:
    if items is None:
        return None
    return {item.question_id: item.response for item in items}


async def _period_or_active(db: AsyncSession, period_id: Optional[UUID]) -> UUID:
    if period_id is not None:
        return period_id
    return (await require_active_period(db)).id


# Questions

@router.get("/questions", response_model=List[QuestionOut])
async def list_questions(
    type: Optional[QuestionType] = Query(None),
    target_role: Optional[UserRole] = Query(None),
    active_only: bool = Query(False),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.list_questions(db, type, target_role, active_only)


@router.get("/questions/mine", response_model=List[QuestionOut])
async def my_questions(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await report_service.list_questions_for(db, user)


@router.post("/questions", response_model=QuestionOut, status_code=201)
async def create_question(body: QuestionCreate, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await report_service.create_question(
        db, admin, body.text, body.type, body.target_role, body.order_index
    )


@router.patch("/questions/{question_id}", response_model=QuestionOut)
async def update_question(
    question_id: UUID,
    body: QuestionUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.update_question(db, question_id, **body.model_dump(exclude_unset=True))


@router.delete("/questions/{question_id}", response_model=MessageResponse)
async def delete_question(question_id: UUID, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await report_service.delete_question(db, question_id)
    return MessageResponse(message="Question deleted")


# Statistics

@router.get("/stats", response_model=ReportStats)
async def stats(
    period_id: Optional[UUID] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.report_stats(db, await _period_or_active(db, period_id))


@router.get("/performance", response_model=List[Performance])
async def performances(
    period_id: Optional[UUID] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.all_performances(db, await _period_or_active(db, period_id))


@router.get("/performance/{user_id}", response_model=Performance)
async def performance(
    user_id: UUID,
    period_id: Optional[UUID] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.performance_summary(db, user_id, await _period_or_active(db, period_id))


# Reports

@router.get("/mine", response_model=List[ReportOut])
async def my_reports(user: User = Depends(require_reporter), db: AsyncSession = Depends(get_db)):
    return await report_service.list_own_reports(db, user)


@router.post("", response_model=ReportOut, status_code=201)
async def create_report(body: ReportCreate, user: User = Depends(require_reporter), db: AsyncSession = Depends(get_db)):
    return await report_service.create_report(
        db, user, body.week_number, _answers(body.responses), body.comments, body.submit
    )


@router.get("", response_model=List[ReportWithUser])
async def all_reports(
    period_id: Optional[UUID] = Query(None),
    status: Optional[WeeklyReportStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await report_service.list_all_reports(db, period_id, status)
    return [
        ReportWithUser(**ReportOut.model_validate(report).model_dump(), user=UserSummary.model_validate(author))
        for report, author in rows
    ]


@router.get("/{report_id}", response_model=ReportDetail)
async def get_report(report_id: UUID, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    report, answers = await report_service.get_report(db, user, report_id)
    return ReportDetail(
        **ReportOut.model_validate(report).model_dump(),
        responses=[
            AnswerOut(question_id=question.id, text=question.text, type=question.type, response=answer.response)
            for answer, question in answers
        ],
    )


@router.patch("/{report_id}", response_model=ReportOut)
async def update_report(
    report_id: UUID,
    body: ReportUpdate,
    user: User = Depends(require_reporter),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.update_report(
        db, user, report_id, _answers(body.responses), body.comments, body.status
    )


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(report_id: UUID, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await report_service.delete_report(db, user, report_id)
    return MessageResponse(message="Report deleted")


@router.post("/{report_id}/review", response_model=ReportOut)
async def review_report(
    report_id: UUID,
    body: ReportReview,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.review_report(
        db, admin, report_id, body.status, body.review_notes, body.points_awarded
    )
