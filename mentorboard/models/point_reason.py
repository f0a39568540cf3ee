"""PointReason model - Admin-curated reasons tutors pick when awarding points"""
from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base


class PointReason(Base):
    """Named reason for a points award"""

    __tablename__ = "point_reasons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self):
        return f"<PointReason(id={self.id}, name={self.name}, active={self.is_active})>"
