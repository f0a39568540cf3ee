"""Wish model - Student requests reviewed by admins"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import WishStatus


class Wish(Base):
    """Free-form student request tied to the period it was made in"""

    __tablename__ = "wishes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    period_id = Column(Uuid, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default=WishStatus.PENDING.value)
    admin_note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (Index("idx_wishes_student", "student_id"),)

    def __repr__(self):
        return f"<Wish(id={self.id}, title={self.title}, status={self.status})>"
