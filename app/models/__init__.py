"""
Models package — import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from app.models.user import User, UserRole, UserStatus
from app.models.session import UserSession
from app.models.password_reset import PasswordResetToken
from app.models.audit_log import AuditCategory, AuditLogEntry

__all__ = [
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utcnow",
    "User",
    "UserRole",
    "UserStatus",
    "UserSession",
    "PasswordResetToken",
    "AuditCategory",
    "AuditLogEntry",
]
