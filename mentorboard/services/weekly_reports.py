"""
Weekly Report Service

Tutors and assistants answer a DONE / NOT_DONE checklist once per week of the
active period. Each DONE answer is worth WEEKLY_REPORT_POINTS_PER_ANSWER
points; admins approve or reject submitted reports.

Performance scoring:
    completion score = DONE / answered * 100 (rounded)
    suggested points = base * band, base 15 for tutors and 10 for assistants,
                       bands >=90: 1.0, >=80: 0.8, >=70: 0.6, >=60: 0.4, >=50: 0.2
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.clock import utcnow
from mentorboard.exceptions import ConflictError, InvalidRequestError, NotFoundError, PermissionDeniedError
from mentorboard.models import (
    User,
    WeeklyReport,
    WeeklyReportQuestion,
    WeeklyReportQuestionResponse,
)
from mentorboard.models.enums import QuestionResponse, QuestionType, UserRole, WeeklyReportStatus
from mentorboard.services.periods import get_period, require_active_period

logger = logging.getLogger(__name__)

REPORTING_ROLES = (UserRole.TUTOR.value, UserRole.ASSISTANT.value)
EDITABLE_STATUSES = (WeeklyReportStatus.DRAFT.value, WeeklyReportStatus.REJECTED.value)

# (minimum score, share of the base points)
SCORE_BANDS = ((90, 1.0), (80, 0.8), (70, 0.6), (60, 0.4), (50, 0.2))
BASE_POINTS = {UserRole.TUTOR.value: 15, UserRole.ASSISTANT.value: 10}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completion_score(done: int, answered: int) -> int:
    """Percentage of answered questions marked DONE (0 when nothing was answered)"""
    if answered <= 0:
        return 0
    return _round_half_up(done / answered * 100)


def suggested_points(score: int, role: str) -> int:
    """Points an admin is suggested to award for a completion score"""
    base = BASE_POINTS.get(role, BASE_POINTS[UserRole.ASSISTANT.value])
    for minimum, share in SCORE_BANDS:
        if score >= minimum:
            return _round_half_up(base * share)
    return 0


def report_points(responses: Iterable[str]) -> int:
    done = sum(1 for response in responses if response == QuestionResponse.DONE.value)
    return done * config.WEEKLY_REPORT_POINTS_PER_ANSWER


# Questions

async def list_questions(
    db: AsyncSession,
    question_type: Optional[QuestionType] = None,
    target_role: Optional[UserRole] = None,
    active_only: bool = False,
) -> List[WeeklyReportQuestion]:
    query = select(WeeklyReportQuestion).order_by(
        WeeklyReportQuestion.type, WeeklyReportQuestion.target_role, WeeklyReportQuestion.order_index
    )
    if question_type is not None:
        query = query.where(WeeklyReportQuestion.type == QuestionType(question_type).value)
    if target_role is not None:
        query = query.where(WeeklyReportQuestion.target_role == UserRole(target_role).value)
    if active_only:
        query = query.where(WeeklyReportQuestion.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_questions_for(db: AsyncSession, user: User) -> List[WeeklyReportQuestion]:
    """Active questions for the caller's role; admins get every active question"""
    if user.role == UserRole.ADMIN.value:
        return await list_questions(db, active_only=True)
    if user.role not in REPORTING_ROLES:
        raise PermissionDeniedError("Only tutors and assistants file weekly reports")
    return await list_questions(db, target_role=user.role, active_only=True)


def _check_target_role(target_role) -> str:
    role = UserRole(target_role).value
    if role not in REPORTING_ROLES:
        raise InvalidRequestError("Questions target tutors or assistants")
    return role


async def create_question(
    db: AsyncSession,
    admin: User,
    text: str,
    question_type: QuestionType,
    target_role: UserRole,
    order_index: Optional[int] = None,
) -> WeeklyReportQuestion:
    """Create a question; without order_index it goes after the last one of its type and role"""
    text = (text or "").strip()
    if not text:
        raise InvalidRequestError("Question text is required")
    question_type = QuestionType(question_type).value
    target_role = _check_target_role(target_role)

    if order_index is None:
        last_index = await db.scalar(
            select(func.max(WeeklyReportQuestion.order_index)).where(
                WeeklyReportQuestion.type == question_type,
                WeeklyReportQuestion.target_role == target_role,
            )
        )
        order_index = 0 if last_index is None else last_index + 1

    question = WeeklyReportQuestion(
        text=text,
        type=question_type,
        target_role=target_role,
        order_index=order_index,
        created_by_id=admin.id,
    )
    db.add(question)
    await db.commit()
    return question


async def update_question(db: AsyncSession, question_id: UUID, **changes) -> WeeklyReportQuestion:
    question = await db.get(WeeklyReportQuestion, question_id)
    if question is None:
        raise NotFoundError("Question not found")

    if changes.get("text") is not None:
        question.text = changes["text"].strip()
    if changes.get("type") is not None:
        question.type = QuestionType(changes["type"]).value
    if changes.get("target_role") is not None:
        question.target_role = _check_target_role(changes["target_role"])
    if changes.get("order_index") is not None:
        question.order_index = changes["order_index"]
    if changes.get("is_active") is not None:
        question.is_active = changes["is_active"]

    await db.commit()
    return question


async def delete_question(db: AsyncSession, question_id: UUID) -> None:
    question = await db.get(WeeklyReportQuestion, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    await db.delete(question)
    await db.commit()


# Reports

async def _validate_responses(db: AsyncSession, responses: Dict[UUID, QuestionResponse]) -> Dict[UUID, str]:
    if not responses:
        return {}
    result = await db.execute(
        select(WeeklyReportQuestion.id).where(
            WeeklyReportQuestion.id.in_(list(responses)),
            WeeklyReportQuestion.is_active.is_(True),
        )
    )
    known = set(result.scalars().all())
    unknown = [str(qid) for qid in responses if qid not in known]
    if unknown:
        raise InvalidRequestError(f"Unknown or inactive questions: {', '.join(unknown)}")
    return {qid: QuestionResponse(value).value for qid, value in responses.items()}


async def _replace_responses(db: AsyncSession, report: WeeklyReport, responses: Dict[UUID, str]):
    existing = await db.execute(
        select(WeeklyReportQuestionResponse).where(WeeklyReportQuestionResponse.report_id == report.id)
    )
    for row in existing.scalars().all():
        await db.delete(row)
    await db.flush()

    for question_id, value in responses.items():
        db.add(WeeklyReportQuestionResponse(report_id=report.id, question_id=question_id, response=value))
    report.points_awarded = report_points(responses.values())


async def list_own_reports(db: AsyncSession, user: User) -> List[WeeklyReport]:
    """Caller's reports in the active period, by week"""
    period = await require_active_period(db)
    result = await db.execute(
        select(WeeklyReport)
        .where(WeeklyReport.user_id == user.id, WeeklyReport.period_id == period.id)
        .order_by(WeeklyReport.week_number)
    )
    return list(result.scalars().all())


async def list_all_reports(
    db: AsyncSession,
    period_id: Optional[UUID] = None,
    status: Optional[WeeklyReportStatus] = None,
) -> List[Tuple[WeeklyReport, User]]:
    query = (
        select(WeeklyReport, User)
        .join(User, User.id == WeeklyReport.user_id)
        .order_by(WeeklyReport.week_number.desc(), User.username)
    )
    if period_id is not None:
        query = query.where(WeeklyReport.period_id == period_id)
    if status is not None:
        query = query.where(WeeklyReport.status == WeeklyReportStatus(status).value)
    result = await db.execute(query)
    return [(report, user) for report, user in result.all()]


async def create_report(
    db: AsyncSession,
    user: User,
    week_number: int,
    responses: Dict[UUID, QuestionResponse],
    comments: Optional[str] = None,
    submit: bool = False,
) -> WeeklyReport:
    """
    File the caller's report for a week of the active period.

    Raises:
        PermissionDeniedError: Caller is not a tutor or assistant
        NoActivePeriodError: No active period
        InvalidRequestError: Week outside the period or unknown questions
        ConflictError: A report for this week already exists
    """
    if user.role not in REPORTING_ROLES:
        raise PermissionDeniedError("Only tutors and assistants file weekly reports")

    period = await require_active_period(db)
    if not 1 <= week_number <= period.total_weeks:
        raise InvalidRequestError(f"Week number must be between 1 and {period.total_weeks}")

    existing = await db.scalar(
        select(WeeklyReport.id).where(
            WeeklyReport.user_id == user.id,
            WeeklyReport.period_id == period.id,
            WeeklyReport.week_number == week_number,
        )
    )
    if existing is not None:
        raise ConflictError(f"A report for week {week_number} already exists", code="DUPLICATE_REPORT")

    answers = await _validate_responses(db, responses)
    report = WeeklyReport(
        user_id=user.id,
        period_id=period.id,
        week_number=week_number,
        status=(WeeklyReportStatus.SUBMITTED if submit else WeeklyReportStatus.DRAFT).value,
        submission_date=utcnow() if submit else None,
        comments=comments,
    )
    db.add(report)
    try:
        await db.flush()
        await _replace_responses(db, report, answers)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"A report for week {week_number} already exists", code="DUPLICATE_REPORT")

    logger.info(f"{user.username} filed weekly report for week {week_number} ({report.points_awarded} points)")
    return report


async def _get_report(db: AsyncSession, actor: User, report_id: UUID) -> WeeklyReport:
    report = await db.get(WeeklyReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    if actor.role != UserRole.ADMIN.value and report.user_id != actor.id:
        raise PermissionDeniedError("You do not have access to this report")
    return report


async def get_report(
    db: AsyncSession, actor: User, report_id: UUID
) -> Tuple[WeeklyReport, List[Tuple[WeeklyReportQuestionResponse, WeeklyReportQuestion]]]:
    """Report plus its answers (with the question) in checklist order"""
    report = await _get_report(db, actor, report_id)
    result = await db.execute(
        select(WeeklyReportQuestionResponse, WeeklyReportQuestion)
        .join(WeeklyReportQuestion, WeeklyReportQuestion.id == WeeklyReportQuestionResponse.question_id)
        .where(WeeklyReportQuestionResponse.report_id == report.id)
        .order_by(WeeklyReportQuestion.type, WeeklyReportQuestion.order_index)
    )
    return report, [(response, question) for response, question in result.all()]


async def update_report(
    db: AsyncSession,
    actor: User,
    report_id: UUID,
    responses: Optional[Dict[UUID, QuestionResponse]] = None,
    comments: Optional[str] = None,
    status: Optional[WeeklyReportStatus] = None,
) -> WeeklyReport:
    """Owner edits while the report is DRAFT or REJECTED; resubmitting stamps the submission date"""
    report = await _get_report(db, actor, report_id)
    if report.user_id != actor.id:
        raise PermissionDeniedError("Only the author can edit a report; admins review it instead")
    if report.status not in EDITABLE_STATUSES:
        raise ConflictError("Only draft or rejected reports can be edited", code="REPORT_LOCKED")

    if responses is not None:
        await _replace_responses(db, report, await _validate_responses(db, responses))
    if comments is not None:
        report.comments = comments
    if status is not None:
        status = WeeklyReportStatus(status).value
        if status not in (WeeklyReportStatus.DRAFT.value, WeeklyReportStatus.SUBMITTED.value):
            raise PermissionDeniedError("Only admins can approve or reject reports")
        if status == WeeklyReportStatus.SUBMITTED.value and report.status != status:
            report.submission_date = utcnow()
        report.status = status

    await db.commit()
    return report


async def review_report(
    db: AsyncSession,
    admin: User,
    report_id: UUID,
    status: WeeklyReportStatus,
    review_notes: Optional[str] = None,
    points_awarded: Optional[int] = None,
) -> WeeklyReport:
    status = WeeklyReportStatus(status).value
    if status not in (WeeklyReportStatus.APPROVED.value, WeeklyReportStatus.REJECTED.value):
        raise InvalidRequestError("Review status must be APPROVED or REJECTED")

    report = await _get_report(db, admin, report_id)
    report.status = status
    report.review_notes = review_notes
    report.review_date = utcnow()
    report.reviewed_by_id = admin.id
    if points_awarded is not None:
        if points_awarded < 0:
            raise InvalidRequestError("Points cannot be negative")
        report.points_awarded = points_awarded

    await db.commit()
    logger.info(f"{admin.username} {status} weekly report {report.id}")
    return report


async def delete_report(db: AsyncSession, actor: User, report_id: UUID) -> None:
    report = await _get_report(db, actor, report_id)
    await db.delete(report)
    await db.commit()


# Statistics

async def report_stats(db: AsyncSession, period_id: UUID) -> Dict[str, Any]:
    """Counts by status, role and week plus total points for a period"""
    period = await get_period(db, period_id)
    result = await db.execute(
        select(WeeklyReport, User.role)
        .join(User, User.id == WeeklyReport.user_id)
        .where(WeeklyReport.period_id == period.id)
    )
    rows = result.all()

    by_status = {status.value: 0 for status in WeeklyReportStatus}
    by_role = {role: 0 for role in REPORTING_ROLES}
    by_week = {week: 0 for week in range(1, period.total_weeks + 1)}
    total_points = 0
    for report, role in rows:
        by_status[report.status] = by_status.get(report.status, 0) + 1
        by_role[role] = by_role.get(role, 0) + 1
        by_week[report.week_number] = by_week.get(report.week_number, 0) + 1
        total_points += report.points_awarded

    return {
        "total": len(rows),
        "by_status": by_status,
        "by_role": by_role,
        "by_week": by_week,
        "total_points_awarded": total_points,
    }


async def performance_summary(db: AsyncSession, user_id: UUID, period_id: UUID) -> Dict[str, Any]:
    """Per-week completion scores and suggested points for one tutor or assistant"""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    period = await get_period(db, period_id)

    reports = (await db.execute(
        select(WeeklyReport)
        .where(WeeklyReport.user_id == user.id, WeeklyReport.period_id == period.id)
        .order_by(WeeklyReport.week_number)
    )).scalars().all()

    answer_counts = {}
    if reports:
        done = func.sum(case((WeeklyReportQuestionResponse.response == QuestionResponse.DONE.value, 1), else_=0))
        counts = await db.execute(
            select(
                WeeklyReportQuestionResponse.report_id,
                func.count(WeeklyReportQuestionResponse.id),
                done,
            )
            .where(WeeklyReportQuestionResponse.report_id.in_([r.id for r in reports]))
            .group_by(WeeklyReportQuestionResponse.report_id)
        )
        answer_counts = {report_id: (int(total), int(done_count or 0)) for report_id, total, done_count in counts.all()}

    weeks = []
    scored = []
    for report in reports:
        answered, done_count = answer_counts.get(report.id, (0, 0))
        score = completion_score(done_count, answered)
        if answered:
            scored.append(score)
        weeks.append({
            "week_number": report.week_number,
            "status": report.status,
            "points_awarded": report.points_awarded,
            "completion_score": score,
            "suggested_points": suggested_points(score, user.role),
        })

    average = _round_half_up(sum(scored) / len(scored)) if scored else 0
    return {
        "user_id": user.id,
        "username": user.username,
        "role": user.role,
        "period_id": period.id,
        "total_reports": len(reports),
        "submitted_reports": sum(1 for r in reports if r.status != WeeklyReportStatus.DRAFT.value),
        "approved_reports": sum(1 for r in reports if r.status == WeeklyReportStatus.APPROVED.value),
        "total_points_earned": sum(r.points_awarded for r in reports),
        "average_completion_score": average,
        "weeks": weeks,
    }


async def all_performances(db: AsyncSession, period_id: UUID) -> List[Dict[str, Any]]:
    """Performance summaries of every tutor and assistant, best earners first"""
    result = await db.execute(
        select(User.id).where(User.role.in_(REPORTING_ROLES), User.is_active.is_(True))
    )
    summaries = [await performance_summary(db, user_id, period_id) for user_id in result.scalars().all()]
    summaries.sort(key=lambda s: s["total_points_earned"], reverse=True)
    return summaries
