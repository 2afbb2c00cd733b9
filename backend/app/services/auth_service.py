"""
TreeSpotter Backend - Auth Service
===================================

What:  Account registration and login.
How:   Registration checks username and email uniqueness up front and again
       through the unique constraints (IntegrityError on a concurrent insert);
       login compares against the bcrypt hash and issues a JWT.
Who:   Called by the auth router.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthenticationError, ConflictError, DatabaseError
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterRequest
from app.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:

    async def register(self, db: AsyncSession, data: RegisterRequest) -> int:
        """
        Create a user account.

        Returns: the new user ID.

        Raises:
            ConflictError: username (USERNAME_TAKEN) or email (EMAIL_TAKEN) in use
        """
        try:
            result = await db.execute(
                select(User.username, User.email).where(
                    or_(User.username == data.username, User.email == data.email)
                )
            )
            existing = result.all()
        except SQLAlchemyError as e:
            logger.error("Failed to check existing users: %s", str(e))
            raise DatabaseError(context={"operation": "register"})

        for username, _ in existing:
            if username == data.username:
                raise ConflictError(message="Username is already taken", code="USERNAME_TAKEN")
        if existing:
            raise ConflictError(message="Email is already registered", code="EMAIL_TAKEN")

        user = User(
            username=data.username,
            password=hash_password(data.password),
            email=data.email,
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            logger.warning("Concurrent registration for username %s", data.username)
            raise ConflictError(message="Username or email is already taken")
        except SQLAlchemyError as e:
            logger.error("Failed to insert user: %s", str(e))
            raise DatabaseError(context={"operation": "register"})

        logger.info("Registered user %s with ID %s", data.username, user.id)
        return user.id

    async def login(self, db: AsyncSession, data: LoginRequest) -> str:
        """
        Returns: a bearer token for the user.

        Raises:
            AuthenticationError: unknown username or wrong password (same error)
        """
        try:
            result = await db.execute(select(User).where(User.username == data.username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to look up user: %s", str(e))
            raise DatabaseError(context={"operation": "login"})

        if user is None or not verify_password(data.password, user.password):
            logger.info("Failed login for username %s", data.username)
            raise AuthenticationError(message="Invalid username or password")

        return create_access_token(user.id)


auth_service = AuthService()
