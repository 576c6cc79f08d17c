"""Database repositories."""

from app.repositories.audit import AuditRepository
from app.repositories.reset_token import ResetTokenRepository
from app.repositories.session import SessionRepository
from app.repositories.user import UserRepository

__all__ = [
    "AuditRepository",
    "ResetTokenRepository",
    "SessionRepository",
    "UserRepository",
]
