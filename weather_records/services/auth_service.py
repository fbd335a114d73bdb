from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.core.config import Settings
from weather_records.core.security import create_access_token, hash_password, verify_password
from weather_records.models.user import User
from weather_records.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AuthValidationError(Exception):
    """Registration or login input is missing or malformed (HTTP 400)."""


class InvalidCredentialsError(Exception):
    """Unknown account or wrong password; the two are not distinguished."""


@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds=rounds)


class AuthService:
    USERNAME_MIN_LENGTH = 3
    USERNAME_MAX_LENGTH = 50
    PASSWORD_MIN_LENGTH = 6
    # bcrypt only accepts this many bytes of input
    PASSWORD_MAX_BYTES = 72
    DUPLICATE_MESSAGE = "Username or email already exists"

    def __init__(self, db: AsyncSession, config: Settings):
        self.users = UserRepository(db)
        self.config = config

    def _issue_token(self, user: User) -> str:
        return create_access_token(
            user.id,
            user.username,
            secret=self.config.jwt_secret,
            expires_days=self.config.jwt_expires_days,
        )

    def validate_registration(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> tuple[str, str, str]:
        """
        Check registration fields in order, raising on the first problem.

        Returns:
            (trimmed username, lowercase email, password)
        """
        name = (username or "").strip()
        if not self.USERNAME_MIN_LENGTH <= len(name) <= self.USERNAME_MAX_LENGTH:
            raise AuthValidationError(
                f"Username must be {self.USERNAME_MIN_LENGTH}-{self.USERNAME_MAX_LENGTH} characters long"
            )

        try:
            validate_email(email or "", check_deliverability=False)
        except EmailNotValidError:
            raise AuthValidationError("Valid email is required")

        if not password or len(password) < self.PASSWORD_MIN_LENGTH:
            raise AuthValidationError(
                f"Password must be at least {self.PASSWORD_MIN_LENGTH} characters long"
            )
        if len(password.encode("utf-8")) > self.PASSWORD_MAX_BYTES:
            raise AuthValidationError(f"Password must be at most {self.PASSWORD_MAX_BYTES} bytes long")

        return name, email.strip().lower(), password

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> AuthResult:
        name, address, secret = self.validate_registration(username, email, password)

        if await self.users.exists(name, address):
            logger.info("Registration rejected: username or email already in use")
            raise AuthValidationError(self.DUPLICATE_MESSAGE)

        password_hash = hash_password(secret, rounds=self.config.bcrypt_rounds)
        try:
            user = await self.users.create(name, address, password_hash)
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise AuthValidationError(self.DUPLICATE_MESSAGE)

        logger.info("User %s registered", user.id)
        return AuthResult(user=user, token=self._issue_token(user))

    async def login(self, identifier: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Authenticate by username or email.

        A missing account and a wrong password raise the same error; a
        dummy hash check keeps the timing of both paths similar.
        """
        if not identifier or not password:
            raise AuthValidationError("Username and password are required")

        user = await self.users.get_by_username_or_email(identifier.strip())
        if user is None:
            verify_password(password, _dummy_hash(self.config.bcrypt_rounds))
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        return AuthResult(user=user, token=self._issue_token(user))
