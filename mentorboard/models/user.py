"""User model - Admins, tutors, assistants and students"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
import uuid

from mentorboard.clock import utcnow
from mentorboard.database import Base
from mentorboard.models.enums import UserRole


class User(Base):
    """Platform account; students belong to one tutor's group, assistants help one tutor"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)
    is_active = Column(Boolean, nullable=False, default=True)
    tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assisted_tutor_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Cached balances; the ledgers are the source of truth
    points = Column(Integer, nullable=False, default=0)
    experience = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_tutor", "tutor_id"),
    )

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
