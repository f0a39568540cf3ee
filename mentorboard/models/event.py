"""Event models - Event types, capacity-limited events and their participants"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, CheckConstraint, Index,
    UniqueConstraint, Uuid,
)
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import EventStatus, ParticipantStatus


class EventType(Base):
    """Category of events (workshop, trip, seminar...)"""

    __tablename__ = "event_types"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<EventType(id={self.id}, name={self.name})>"


class Event(Base):
    """
    Event with a hard seat limit.

    registered_count is the seat counter reserved by a conditional UPDATE;
    the check constraint keeps it inside [0, capacity] at the database level.
    """

    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    event_type_id = Column(Uuid, ForeignKey("event_types.id", ondelete="RESTRICT"), nullable=False)
    event_date = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=True)
    capacity = Column(Integer, nullable=False)
    registered_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=EventStatus.UPCOMING.value)
    notes = Column(Text, nullable=True)
    qr_code_token = Column(String(64), unique=True, nullable=True)
    qr_code_expires_at = Column(DateTime, nullable=True)
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
        CheckConstraint("capacity > 0", name="ck_events_capacity_positive"),
        CheckConstraint(
            "registered_count >= 0 AND registered_count <= capacity",
            name="ck_events_registered_within_capacity",
        ),
        Index("idx_events_date", "event_date"),
        Index("idx_events_status", "status"),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title={self.title}, {self.registered_count}/{self.capacity})>"


class EventParticipant(Base):
    """Registration (and later attendance) of a student for an event"""

    __tablename__ = "event_participants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default=ParticipantStatus.REGISTERED.value)
    check_in_method = Column(String(20), nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    registered_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "student_id", name="uq_event_participant"),
        Index("idx_event_participants_student", "student_id"),
    )

    def __repr__(self):
        return f"<EventParticipant(event={self.event_id}, student={self.student_id}, status={self.status})>"
