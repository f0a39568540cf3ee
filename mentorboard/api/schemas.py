"""Response models shared by several routers"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    """Base for responses built from ORM rows"""
    model_config = ConfigDict(from_attributes=True)


class UserSummary(ORMModel):
    id: UUID
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    role: str


class UserOut(UserSummary):
    email: str
    is_active: bool
    tutor_id: Optional[UUID] = None
    assisted_tutor_id: Optional[UUID] = None
    points: int
    experience: int
    created_at: datetime


class MessageResponse(BaseModel):
    message: str
