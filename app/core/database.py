"""
Database engine & per-request session.

The engine is built once from settings; every request gets its own
`AsyncSession` through `get_db`.  The whole request runs in a single
transaction.  Services only `flush()`; write routes `await db.commit()`
before building their response, because a yield dependency's teardown
runs after the response has been sent.  `get_db` still rolls back when
the handler raises and commits whatever a handler left pending.
"""

import logging
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — one session (and one transaction) per request."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
