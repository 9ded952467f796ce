"""
QPaperHub Backend — User Service
==================================

What:  Account creation and credential verification.
How:   werkzeug's salted password hashing; the unique index on
       users.username decides duplicate names, including concurrent sign-ups.
Who:   Called by POST /api/createUser and POST /api/loginUser.

There are no sessions or tokens: a successful login just confirms the pair.
"""

import asyncio
import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from app.config import settings
from app.database import guarded
from app.exceptions import AuthenticationError, ValidationError
from app.models.user import User
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password."

# Width of users.username
USERNAME_MAX_LENGTH = 255


class UserService:
    """Stateless; receives the session per call."""

    def __init__(
        self,
        username_min_length: Optional[int] = None,
        password_min_length: Optional[int] = None,
    ):
        self.username_min_length = username_min_length or settings.username_min_length
        self.password_min_length = password_min_length or settings.password_min_length

    def validate_credentials(
        self, username: Optional[str], password: Optional[str],
    ) -> Dict[str, str]:
        """
        Enforce presence and minimum lengths.

        The username is stripped; the password is taken verbatim.
        """
        username = username.strip() if isinstance(username, str) else ""
        password = password if isinstance(password, str) else ""

        if not username or not password:
            raise ValidationError(
                message="Username and password are required.",
                field="username" if not username else "password",
            )
        if len(username) < self.username_min_length:
            raise ValidationError(
                message=f"Username must be at least {self.username_min_length} characters.",
                field="username",
            )
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                message=f"Username must be at most {USERNAME_MAX_LENGTH} characters.",
                field="username",
            )
        if len(password) < self.password_min_length:
            raise ValidationError(
                message=f"Password must be at least {self.password_min_length} characters.",
                field="password",
            )
        return {"username": username, "password": password}

    async def create_user(
        self, db: AsyncSession, username: Optional[str], password: Optional[str],
    ) -> UserResponse:
        """
        Register a new account.

        Raises:
            ValidationError: bad lengths, or the username is already taken
            PersistenceError: database failure or timeout
        """
        creds = self.validate_credentials(username, password)
        password_hash = await asyncio.to_thread(generate_password_hash, creds["password"])
        user = await guarded(
            self._insert(db, creds["username"], password_hash),
            "create user",
        )
        logger.info("Created user %s", user.username)
        return UserResponse(username=user.username, created_at=user.created_at)

    async def verify_user(
        self, db: AsyncSession, username: Optional[str], password: Optional[str],
    ) -> UserResponse:
        """
        Check a username/password pair.

        Raises:
            ValidationError: missing fields or bad lengths
            AuthenticationError: unknown user or wrong password (same message)
        """
        creds = self.validate_credentials(username, password)
        result = await guarded(
            db.execute(select(User).where(User.username == creds["username"])),
            "load user",
        )
        user = result.scalar_one_or_none()

        if user is None or not await asyncio.to_thread(
            check_password_hash, user.password_hash, creds["password"],
        ):
            logger.info("Failed login attempt for %s", creds["username"])
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        logger.info("User %s logged in", user.username)
        return UserResponse(username=user.username, created_at=user.created_at)

    @staticmethod
    async def _insert(db: AsyncSession, username: str, password_hash: str) -> User:
        existing = await db.execute(select(User.id).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(message="Username already taken.", field="username")

        user = User(username=username, password_hash=password_hash)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent sign-up for the same name
            await db.rollback()
            raise ValidationError(message="Username already taken.", field="username")
        return user


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
