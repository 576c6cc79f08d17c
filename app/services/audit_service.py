"""
Audit service — the single write boundary for the audit trail.

Two modes:
- required: the row is inserted in the caller's transaction; a failure
  propagates and rolls back the whole operation.
- best-effort (default): the insert runs inside a SAVEPOINT; a failure
  rolls back only the savepoint, is logged, and the caller carries on.
"""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditCategory, AuditLogEntry
from app.repositories.audit import AuditRepository

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE = 500


async def record_audit(
    db: AsyncSession,
    category: AuditCategory | str,
    *,
    actor_id: uuid.UUID | None = None,
    target_id: uuid.UUID | None = None,
    sponsor_id: int | None = None,
    success: bool = True,
    details: str = "",
    required: bool = False,
) -> AuditLogEntry | None:
    """Append one audit row.  Returns None when a best-effort write failed."""
    category_value = category.value if isinstance(category, AuditCategory) else str(category)
    repo = AuditRepository(db)
    fields = dict(
        category=category_value,
        actor_user_id=actor_id,
        target_user_id=target_id,
        sponsor_id=sponsor_id,
        success=success,
        details=details,
    )

    if required:
        return await repo.add(**fields)

    try:
        async with db.begin_nested():
            return await repo.add(**fields)
    except SQLAlchemyError:
        logger.exception(
            "Audit write failed (category=%s actor=%s target=%s)",
            category_value,
            actor_id,
            target_id,
        )
        return None


async def list_audit_logs(
    db: AsyncSession,
    *,
    category: str | None = None,
    target_id: uuid.UUID | None = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    limit = max(1, min(limit, MAX_AUDIT_PAGE))
    return await AuditRepository(db).list_entries(
        category=category,
        target_user_id=target_id,
        limit=limit,
    )
