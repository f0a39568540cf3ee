"""
Authentication dependencies

Bearer JWT authentication for every protected route, plus role guards.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.database import get_db
from mentorboard.exceptions import AuthenticationError, PermissionDeniedError
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services.security import decode_access_token

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: Missing or invalid token, unknown or disabled user
    """
    if credentials is None:
        raise AuthenticationError("Authorization header missing", code="AUTH_MISSING")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = UUID(payload.get("sub", ""))
    except ValueError:
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning(f"Token for unknown or disabled user {user_id}")
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")
    return user


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles(UserRole.ADMIN))])
        async def create(user: User = Depends(require_roles(UserRole.ADMIN))): ...
    """
    allowed = {UserRole(role).value for role in roles}

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDeniedError("You do not have permission to perform this action")
        return user

    return checker


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.TUTOR, UserRole.ASSISTANT)
require_student = require_roles(UserRole.STUDENT)
