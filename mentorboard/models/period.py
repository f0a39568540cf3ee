"""Period model - Administrator-defined academic terms"""
from sqlalchemy import Column, String, Integer, DateTime, Text, CheckConstraint, Index, Uuid, text
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import PeriodStatus


class Period(Base):
    """Time window every ledger row, wish and weekly report is attached to"""

    __tablename__ = "periods"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    total_weeks = Column(Integer, CheckConstraint("total_weeks > 0"), nullable=False, default=8)
    status = Column(String(20), nullable=False, default=PeriodStatus.INACTIVE.value)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_periods_status", "status"),
        # At most one ACTIVE period
        Index(
            "uq_periods_single_active",
            "status",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    def __repr__(self):
        return f"<Period(id={self.id}, name={self.name}, status={self.status})>"
