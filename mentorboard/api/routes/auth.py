"""
Authentication API Endpoints

POST /api/v1/auth/login - Exchange credentials for a bearer token
GET /api/v1/auth/me - Current user
POST /api/v1/auth/password - Change own password
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.api.auth import get_current_user
from mentorboard.api.schemas import MessageResponse, UserOut
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.services import users as user_service
from mentorboard.services.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class PasswordChangeRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=6)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Issue an access token for valid credentials"""
    user = await user_service.authenticate(db, body.username, body.password)
    token = create_access_token(user.id, user.role)
    logger.info(f"User {user.username} logged in")
    return TokenResponse(
        access_token=token,
        expires_in=config.ACCESS_TOKEN_TTL_MINUTES * 60,
        user=UserOut.model_validate(user),
    )


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return user


@router.post("/password", response_model=MessageResponse)
async def change_own_password(
    body: PasswordChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, user, user.id, body.new_password, body.current_password)
    return MessageResponse(message="Password updated")
