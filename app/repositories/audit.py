"""
Audit trail repository.

Insert and read only — there is deliberately no update or delete.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLogEntry


class AuditRepository:
    """Repository for AuditLogEntry database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        *,
        category: str,
        actor_user_id: uuid.UUID | None,
        target_user_id: uuid.UUID | None,
        sponsor_id: int | None,
        success: bool,
        details: str,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            category=category,
            actor_user_id=actor_user_id,
            target_user_id=target_user_id,
            sponsor_id=sponsor_id,
            success=success,
            details=details,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_entries(
        self,
        *,
        category: str | None = None,
        target_user_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """Newest entries first, optionally filtered."""
        stmt = select(AuditLogEntry)
        if category:
            stmt = stmt.where(AuditLogEntry.category == category)
        if target_user_id is not None:
            stmt = stmt.where(AuditLogEntry.target_user_id == target_user_id)
        stmt = stmt.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
