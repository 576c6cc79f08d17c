"""
Audit trail model.

Append-only: rows are inserted through `audit_service.record_audit`
and never updated or deleted.  Actor / target references are set to
NULL if a user row ever disappears, so history outlives the account.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class AuditCategory(str, enum.Enum):
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    ADMIN_DELETED_USER = "ADMIN_DELETED_USER"
    ADMIN_RESTORED_USER = "ADMIN_RESTORED_USER"
    ADMIN_DISABLED_USER = "ADMIN_DISABLED_USER"
    ADMIN_TEST_LOGIN = "ADMIN_TEST_LOGIN"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET_COMPLETE = "PASSWORD_RESET_COMPLETE"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    USERNAME_CHANGE = "USERNAME_CHANGE"
    EMAIL_CHANGE = "EMAIL_CHANGE"


class AuditLogEntry(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    # Plain string so business-domain categories can share the table.
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sponsor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    details: Mapped[str] = mapped_column(Text, default="", nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.category} target={self.target_user_id}>"
