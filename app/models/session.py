"""
Session ledger model.

One row per successful login, keyed by the random `jti` embedded in
the issued JWT.  A session is alive while `revoked_at IS NULL`;
revocation happens on logout, on eviction by the session limiter,
and when an admin disables or deletes the owning account.

`expires_at` mirrors the JWT expiry and is informational — the Session
Gate relies on the token's signed `exp` plus `revoked_at`.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class UserSession(Base):
    __tablename__ = "sessions"

    # Integer key: FIFO eviction breaks created_at ties by insertion order.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    jti: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_sessions_user_revoked", "user_id", "revoked_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None

    def __repr__(self) -> str:
        return f"<UserSession user={self.user_id} jti={self.jti[:8]}… active={self.is_active}>"
