"""
Session service — the session limiter & ledger lifecycle helpers.

Handles:
- FIFO eviction of the oldest live sessions before a new login
- Opening a session row for a freshly minted `jti`
- Revoking single sessions (logout) and all sessions of a user
  (admin disable / delete, password reset)

The read-revoke-insert sequence of a login is not serialized.  Two
simultaneous logins of the same user can briefly leave one session too
many; revocation stays authoritative per row, so the gate is never wrong.
"""

import logging
import uuid
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import SessionLimitMisconfigured
from app.models.base import utcnow
from app.models.session import UserSession
from app.repositories.session import SessionRepository

logger = logging.getLogger(__name__)


async def get_active_sessions(user_id: uuid.UUID, db: AsyncSession) -> list[UserSession]:
    """Return all live sessions for a user, oldest first."""
    return await SessionRepository(db).list_active(user_id)


async def enforce_session_limit(
    user_id: uuid.UUID,
    db: AsyncSession,
    limit: int | None = None,
) -> list[UserSession]:
    """
    Make room for one more session under the concurrency cap.

    Revokes the oldest live session, one at a time, while the live
    count is at or above the limit.  Returns the evicted sessions.

    A non-positive limit is a configuration error: the login is denied
    rather than looping forever or granting unlimited sessions.
    """
    limit = settings.SESSION_LIMIT if limit is None else limit
    if limit < 1:
        logger.error("SESSION_LIMIT=%s is not a positive integer; denying login", limit)
        raise SessionLimitMisconfigured()

    repo = SessionRepository(db)
    active = await repo.list_active(user_id)
    evicted: list[UserSession] = []

    while len(active) >= limit:
        oldest = active.pop(0)
        await repo.revoke(oldest.id)
        evicted.append(oldest)

    if evicted:
        logger.info(
            "Evicted %d session(s) for user %s (limit=%d)",
            len(evicted),
            user_id,
            limit,
        )
    return evicted


async def open_session(user_id: uuid.UUID, jti: str, db: AsyncSession) -> UserSession:
    """Evict as needed, then record a new live session for `jti`."""
    await enforce_session_limit(user_id, db)
    expires_at = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return await SessionRepository(db).create(user_id, jti, expires_at)


async def revoke_session(user_id: uuid.UUID, jti: str, db: AsyncSession) -> bool:
    """Mark one session revoked (logout).  False when it was already dead."""
    revoked = await SessionRepository(db).revoke_by_jti(user_id, jti)
    return revoked > 0


async def revoke_all_user_sessions(user_id: uuid.UUID, db: AsyncSession) -> int:
    """
    Revoke every live session for a given user.

    Returns the number of sessions affected.
    Used by admin disable / delete flows and password reset.
    """
    count = await SessionRepository(db).revoke_all(user_id)
    if count:
        logger.info("Revoked %d session(s) for user %s", count, user_id)
    return count
