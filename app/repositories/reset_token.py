"""
Password reset token repository.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.password_reset import PasswordResetToken


class ResetTokenRepository:
    """Repository for PasswordResetToken database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: uuid.UUID, token: str, expires_at: datetime) -> PasswordResetToken:
        row = PasswordResetToken(
            id=uuid.uuid4(),
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            used=False,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def find_valid(
        self,
        token: str,
        now: datetime,
        *,
        for_update: bool = False,
    ) -> PasswordResetToken | None:
        """
        Return the token row if it is unused and unexpired.

        Args:
            token: Raw token string presented by the client
            now: Reference time for the expiry check
            for_update: Lock the row for the rest of the transaction

        Returns:
            The matching row, or None when missing, used or expired
        """
        stmt = select(PasswordResetToken).where(
            PasswordResetToken.token == token,
            PasswordResetToken.used.is_(False),
            PasswordResetToken.expires_at > now,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_used(self, row: PasswordResetToken) -> None:
        row.used = True
        await self.session.flush()

    async def purge_stale(self, user_id: uuid.UUID, now: datetime) -> int:
        """Delete this user's tokens that are already used or expired."""
        stmt = delete(PasswordResetToken).where(
            PasswordResetToken.user_id == user_id,
            or_(PasswordResetToken.used.is_(True), PasswordResetToken.expires_at < now),
        )
        result = await self.session.execute(stmt)
        return result.rowcount

