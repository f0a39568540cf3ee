"""Syllabus models - Classrooms, syllabi, ordered lessons and per-classroom progress"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base


class Classroom(Base):
    """A tutor's teaching group"""

    __tablename__ = "classrooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    __table_args__ = (Index("idx_classrooms_tutor", "tutor_id"),)

    def __repr__(self):
        return f"<Classroom(id={self.id}, name={self.name})>"


class Syllabus(Base):
    """Curriculum owned by a tutor (or global when shared with every classroom)"""

    __tablename__ = "syllabi"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    is_global = Column(Boolean, nullable=False, default=False)
    share_token = Column(String(64), unique=True, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (Index("idx_syllabi_creator", "created_by_id"),)

    def __repr__(self):
        return f"<Syllabus(id={self.id}, title={self.title})>"


class SyllabusLesson(Base):
    """Lesson within a syllabus, ordered by order_index"""

    __tablename__ = "syllabus_lessons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    syllabus_id = Column(Uuid, ForeignKey("syllabi.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (Index("idx_lessons_syllabus_order", "syllabus_id", "order_index"),)

    def __repr__(self):
        return f"<SyllabusLesson(id={self.id}, title={self.title}, order={self.order_index})>"


class ClassroomLessonProgress(Base):
    """Whether a classroom has been taught a given lesson"""

    __tablename__ = "classroom_lesson_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    syllabus_id = Column(Uuid, ForeignKey("syllabi.id", ondelete="CASCADE"), nullable=False)
    lesson_id = Column(Uuid, ForeignKey("syllabus_lessons.id", ondelete="CASCADE"), nullable=False)
    is_taught = Column(Boolean, nullable=False, default=False)
    taught_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("classroom_id", "lesson_id", name="uq_progress_classroom_lesson"),
        Index("idx_progress_syllabus", "syllabus_id"),
    )

    def __repr__(self):
        return f"<ClassroomLessonProgress(classroom={self.classroom_id}, lesson={self.lesson_id})>"
