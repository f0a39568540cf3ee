"""
Password hashing and access tokens.

Passwords are stored as bcrypt hashes; API clients authenticate with a signed
JWT carrying the user id (sub), role and expiry.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from mentorboard import config
from mentorboard.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a plain password with a fresh bcrypt salt"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user_id, role: str, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed access token.

    Args:
        user_id: User primary key (UUID or str)
        role: UserRole value
        expires_minutes: Lifetime override (defaults to ACCESS_TOKEN_TTL_MINUTES)

    Returns:
        Encoded JWT string
    """
    ttl = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_TTL_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        AuthenticationError: If the token is expired or invalid
    """
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        logger.warning(f"Invalid token attempt: {token[:10]}...")
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")
