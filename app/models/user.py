"""
User model — the credential store.

Design decisions:
- Role is a fixed enum (DRIVER / SPONSOR / ADMIN) stored on the row;
  there is no role table because role gates are plain equality checks.
- Status (ACTIVE / DISABLED) is independent of soft deletion.
- Email is stored normalized (trimmed + lowercased) and is unique only
  among non-deleted rows, so a deleted account's address can be reused.
- Profile fields live elsewhere; only `sponsor_id` (the sponsor
  affiliation carried in tokens) is kept here.
"""

import enum

from sqlalchemy import Enum, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(str, enum.Enum):
    DRIVER = "DRIVER"
    SPONSOR = "SPONSOR"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        default=UserRole.DRIVER,
        nullable=False,
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status"),
        default=UserStatus.ACTIVE,
        nullable=False,
    )
    sponsor_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    __table_args__ = (
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.email} [{self.role.value}]>"
