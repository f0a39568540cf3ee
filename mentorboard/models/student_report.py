"""StudentReport model - Tutor-written performance reports about a student"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base


class StudentReport(Base):
    """Free-text performance report"""

    __tablename__ = "student_reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (Index("idx_student_reports_student", "student_id"),)

    def __repr__(self):
        return f"<StudentReport(id={self.id}, student={self.student_id}, title={self.title})>"
