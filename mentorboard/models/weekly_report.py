"""Weekly report models - Staff self-reports, their questions and answers"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, CheckConstraint, Index,
    UniqueConstraint, Uuid,
)
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import WeeklyReportStatus


class WeeklyReportQuestion(Base):
    """Checklist item shown to tutors or assistants on their weekly report"""

    __tablename__ = "weekly_report_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    text = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)  # FIXED or VARIABLE
    target_role = Column(String(20), nullable=False)  # TUTOR or ASSISTANT
    order_index = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (Index("idx_questions_type_role", "type", "target_role", "order_index"),)

    def __repr__(self):
        return f"<WeeklyReportQuestion(id={self.id}, {self.type}/{self.target_role})>"


class WeeklyReport(Base):
    """One staff member's report for one week of a period"""

    __tablename__ = "weekly_reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    period_id = Column(Uuid, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False)
    week_number = Column(Integer, CheckConstraint("week_number > 0"), nullable=False)
    status = Column(String(20), nullable=False, default=WeeklyReportStatus.DRAFT.value)
    submission_date = Column(DateTime, nullable=True)
    review_date = Column(DateTime, nullable=True)
    reviewed_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    review_notes = Column(Text, nullable=True)
    points_awarded = Column(Integer, nullable=False, default=0)
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "period_id", "week_number", name="uq_weekly_report_week"),
        Index("idx_weekly_reports_period", "period_id"),
    )

    def __repr__(self):
        return f"<WeeklyReport(id={self.id}, user={self.user_id}, week={self.week_number})>"


class WeeklyReportQuestionResponse(Base):
    """Answer to one question on one report"""

    __tablename__ = "weekly_report_responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id = Column(Uuid, ForeignKey("weekly_reports.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Uuid, ForeignKey("weekly_report_questions.id", ondelete="CASCADE"), nullable=False)
    response = Column(String(20), nullable=False)  # DONE or NOT_DONE

    __table_args__ = (
        UniqueConstraint("report_id", "question_id", name="uq_report_question"),
    )

    def __repr__(self):
        return f"<WeeklyReportQuestionResponse(report={self.report_id}, question={self.question_id})>"
