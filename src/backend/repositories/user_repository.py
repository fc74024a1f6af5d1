"""
User repository for database operations.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User, UserRole


class UserRepository:
    """Repository for staff and candidate accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        name: str,
        role: UserRole = UserRole.CANDIDATE,
        reg_no: Optional[str] = None,
        program: Optional[str] = None,
    ) -> User:
        """Create a new user."""
        user = User(
            email=email.lower(),
            name=name,
            role=role.value,
            reg_no=reg_no,
            program=program,
            is_active=True,
        )

        self.db.add(user)
        await self.db.flush()

        return user
