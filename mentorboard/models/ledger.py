"""Ledger models - Points and experience transactions plus rollback audit rows"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, CheckConstraint, Index,
    UniqueConstraint, Uuid,
)
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base


class PointsTransaction(Base):
    """Immutable points ledger row; only the rolled_back flag ever changes"""

    __tablename__ = "points_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    points = Column(Integer, CheckConstraint("points > 0"), nullable=False)
    type = Column(String(20), nullable=False)  # AWARD or REDEEM
    reason = Column(String(500), nullable=True)
    point_reason_id = Column(Uuid, ForeignKey("point_reasons.id", ondelete="SET NULL"), nullable=True)
    period_id = Column(Uuid, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False)
    rolled_back = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_points_student_period", "student_id", "period_id"),
        Index("idx_points_tutor", "tutor_id"),
        Index("idx_points_reason", "point_reason_id"),
    )

    def __repr__(self):
        return f"<PointsTransaction(id={self.id}, student={self.student_id}, {self.type} {self.points})>"


class ExperienceTransaction(Base):
    """Immutable experience ledger row; amount may be negative"""

    __tablename__ = "experience_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Integer, CheckConstraint("amount <> 0"), nullable=False)
    period_id = Column(Uuid, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False)
    rolled_back = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_experience_student_period", "student_id", "period_id"),
        Index("idx_experience_tutor", "tutor_id"),
    )

    def __repr__(self):
        return f"<ExperienceTransaction(id={self.id}, student={self.student_id}, amount={self.amount})>"


class TransactionRollback(Base):
    """Audit row written when an admin reverses a ledger row"""

    __tablename__ = "transaction_rollbacks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id = Column(Uuid, nullable=False)
    transaction_type = Column(String(20), nullable=False)  # POINTS or EXPERIENCE
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    admin_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("transaction_id", "transaction_type", name="uq_rollback_transaction"),
    )

    def __repr__(self):
        return f"<TransactionRollback(id={self.id}, {self.transaction_type} {self.transaction_id})>"
