"""
Session ledger repository.

All "alive" checks mean `revoked_at IS NULL`.  Revocations are plain
UPDATEs guarded by that predicate, so revoking twice is a no-op.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.session import UserSession


class SessionRepository:
    """Repository for UserSession database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: uuid.UUID, jti: str, expires_at: datetime) -> UserSession:
        row = UserSession(user_id=user_id, jti=jti, expires_at=expires_at)
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_active(self, user_id: uuid.UUID) -> list[UserSession]:
        """
        Non-revoked sessions for a user, oldest first.

        Ties on `created_at` fall back to the id, i.e. insertion order.
        """
        stmt = (
            select(UserSession)
            .where(UserSession.user_id == user_id, UserSession.revoked_at.is_(None))
            .order_by(UserSession.created_at.asc(), UserSession.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active(self, user_id: uuid.UUID, jti: str) -> UserSession | None:
        stmt = select(UserSession).where(
            UserSession.user_id == user_id,
            UserSession.jti == jti,
            UserSession.revoked_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke(self, session_id: int) -> int:
        """Revoke one session by primary key.  Returns rows affected (0 or 1)."""
        stmt = (
            update(UserSession)
            .where(UserSession.id == session_id, UserSession.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def revoke_by_jti(self, user_id: uuid.UUID, jti: str) -> int:
        stmt = (
            update(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.jti == jti,
                UserSession.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def revoke_all(self, user_id: uuid.UUID) -> int:
        """Revoke every live session of a user.  Returns the number revoked."""
        stmt = (
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount
