"""Attendance models - Weekly sessions and per-student check-ins"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import AttendanceSessionStatus, CheckInMethod


class AttendanceSession(Base):
    """Attendance session created by a tutor, optionally redeemable by QR token"""

    __tablename__ = "attendance_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    session_date = Column(DateTime, nullable=False)
    qr_code_token = Column(String(64), unique=True, nullable=True)
    qr_code_expires_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=AttendanceSessionStatus.ACTIVE.value)
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_attendance_sessions_creator", "created_by_id"),
        Index("idx_attendance_sessions_date", "session_date"),
    )

    def __repr__(self):
        return f"<AttendanceSession(id={self.id}, title={self.title}, status={self.status})>"


class StudentAttendance(Base):
    """One check-in of one student into one session"""

    __tablename__ = "student_attendances"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    check_in_time = Column(DateTime, default=utcnow, nullable=False)
    check_in_method = Column(String(20), nullable=False, default=CheckInMethod.QR.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_attendance_session_student"),
        Index("idx_attendances_student", "student_id"),
    )

    def __repr__(self):
        return f"<StudentAttendance(session={self.session_id}, student={self.student_id})>"
