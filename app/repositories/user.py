"""
User repository.

Handles database operations for the User model.  Every lookup except
the explicit `*_include_deleted` variants hides soft-deleted rows.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EmailTaken
from app.models.base import utcnow
from app.models.user import User, UserRole, UserStatus


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session bound to the current request
        """
        self.session = session

    async def _flush_live_email(self, conflict_message: str | None = None) -> None:
        """Flush, reporting a live-email unique index violation as EmailTaken."""
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise EmailTaken(conflict_message) from exc

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.DRIVER,
        username: str | None = None,
        sponsor_id: int | None = None,
    ) -> User:
        """
        Insert a new ACTIVE user.

        Args:
            email: Already-normalized email
            password_hash: bcrypt digest
            role: Account role
            username: Optional display handle
            sponsor_id: Optional sponsor affiliation

        Returns:
            The flushed user, with its generated id
        """
        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=password_hash,
            role=role,
            username=username,
            sponsor_id=sponsor_id,
            status=UserStatus.ACTIVE,
        )
        self.session.add(user)
        await self._flush_live_email()
        return user

    async def get_by_email(self, email: str) -> User | None:
        """
        Get a non-deleted user by normalized email.

        Args:
            email: Normalized email

        Returns:
            User instance if found, None otherwise
        """
        stmt = select(User).where(User.email == email, User.is_deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: uuid.UUID, *, for_update: bool = False) -> User | None:
        """Get a non-deleted user by id, optionally locking the row."""
        stmt = select(User).where(User.id == user_id, User.is_deleted.is_(False))
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id_include_deleted(
        self,
        user_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> User | None:
        """Get a user by id whether or not it is soft-deleted (restore flows)."""
        stmt = select(User).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_taken(self, email: str, *, exclude_user_id: uuid.UUID | None = None) -> bool:
        """True when a live user other than `exclude_user_id` owns the email."""
        stmt = select(User.id).where(User.email == email, User.is_deleted.is_(False))
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        result = await self.session.execute(stmt.limit(1))
        return result.first() is not None

    async def list_deleted(self) -> list[User]:
        """Soft-deleted users, most recently deleted first."""
        stmt = (
            select(User)
            .where(User.is_deleted.is_(True))
            .order_by(User.deleted_at.desc(), User.email)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def soft_delete(
        self,
        user: User,
        *,
        deleted_by: uuid.UUID | None,
        at: datetime | None = None,
    ) -> User:
        user.is_deleted = True
        user.deleted_at = at or utcnow()
        user.deleted_by = deleted_by
        await self.session.flush()
        return user

    async def restore(self, user: User) -> User:
        user.is_deleted = False
        user.deleted_at = None
        user.deleted_by = None
        await self._flush_live_email("Email is now used by another account")
        return user

    async def update(self, user: User) -> User:
        """Flush pending attribute changes on a loaded user."""
        await self._flush_live_email()
        return user
