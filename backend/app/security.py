"""
TreeSpotter Backend - Password Hashing and Bearer Tokens
=========================================================

What:  bcrypt password hashing, JWT issue/verify, and the FastAPI dependency
       that turns an `Authorization: Bearer <token>` header into a user ID.
How:   Tokens are HS256-signed with JWT_SECRET and carry `user_id` plus `exp`
       (JWT_EXPIRE_HOURS from issue time). PyJWT checks signature and expiry.
Who:   AuthService (hash/verify/issue) and every owner-scoped router
       (get_current_user_id).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Password hash in unexpected format")
        return False


def _signing_key() -> str:
    # PyJWT rejects an empty HMAC key with InvalidKeyError, which is not a token error
    if not settings.jwt_secret:
        raise ConfigurationError(
            message="Authentication is not configured on this server",
            setting="JWT_SECRET",
        )
    return settings.jwt_secret


def create_access_token(user_id: int, now: Optional[datetime] = None) -> str:
    """Issue a signed token for user_id, valid for jwt_expire_hours."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "iat": issued,
        "exp": issued + timedelta(hours=settings.jwt_expire_hours),
    }
    return jwt.encode(payload, _signing_key(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """
    Verify a token and return the user ID it was issued for.

    Raises:
        AuthenticationError: expired, badly signed, or malformed token
        ConfigurationError: JWT_SECRET is not set
    """
    key = _signing_key()
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "user_id"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected bearer token: %s", str(e))
        raise AuthenticationError(message="Invalid token", code="INVALID_TOKEN")

    user_id = payload["user_id"]
    if not isinstance(user_id, int):
        raise AuthenticationError(message="Invalid token", code="INVALID_TOKEN")
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """FastAPI dependency: the authenticated user's ID, or 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Authentication required", code="MISSING_TOKEN")
    return decode_access_token(credentials.credentials)
