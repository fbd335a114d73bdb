from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.models.user import User


class UserRepository:
    """
    Repository for managing user account persistence.

    This repository encapsulates all database operations related to
    `User` entities. Emails are always compared and stored lowercase.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with an active database session.

        Args:
            db: Asynchronous SQLAlchemy session.
        """
        self.db = db

    async def exists(self, username: str, email: str) -> bool:
        """
        Return True if a user already holds `username` or `email`.
        """
        stmt = select(func.count(User.id)).where(
            or_(User.username == username, User.email == email.lower())
        )
        count = (await self.db.execute(stmt)).scalar_one()
        return count > 0

    async def get_by_username_or_email(self, identifier: str) -> Optional[User]:
        """
        Retrieve a user whose username or email matches `identifier`.

        Args:
            identifier: A username, or an email address in any case.

        Returns:
            The matching `User` if found, otherwise `None`.
        """
        stmt = (
            select(User)
            .where(or_(User.username == identifier, User.email == identifier.lower()))
            .order_by(User.id.asc())
            .limit(1)
        )
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def create(self, username: str, email: str, password_hash: str) -> User:
        """
        Insert a new user and commit.

        Raises:
            sqlalchemy.exc.IntegrityError if the username or email is taken.
        """
        user = User(username=username, email=email.lower(), password_hash=password_hash)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return user
