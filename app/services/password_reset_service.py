"""
Password reset service.

Flow:
1. `request_reset`  — issue a single-use random token for a live account.
2. `verify_reset_token` — read-only probe the frontend calls before
   showing the "new password" form.
3. `reset_password` — consume the token, replace the digest and revoke
   every session of the user.

The request step answers identically for known and unknown emails.
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import InvalidOrExpiredToken, ValidationError, WeakPassword
from app.core.security import check_password_bytes, hash_password
from app.models.audit_log import AuditCategory
from app.models.base import utcnow
from app.repositories.reset_token import ResetTokenRepository
from app.repositories.user import UserRepository
from app.services import audit_service, email_service, session_service
from app.services.auth_service import find_user_by_email

logger = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If an account exists with this email, a reset link has been sent."
DEV_RESET_MESSAGE = "Password reset token generated"


def generate_reset_token() -> str:
    """256 bits of randomness, hex encoded."""
    return secrets.token_hex(32)


def check_password_strength(password: str | None) -> None:
    if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
        raise WeakPassword(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        )
    check_password_bytes(password)


async def request_reset(email: str, db: AsyncSession) -> dict:
    if not email or not email.strip():
        raise ValidationError("Email is required")

    user = await find_user_by_email(email, db)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return {"message": GENERIC_RESET_MESSAGE}

    now = utcnow()
    tokens = ResetTokenRepository(db)
    await tokens.purge_stale(user.id, now)

    token = generate_reset_token()
    await tokens.create(
        user.id,
        token,
        now + timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
    )
    await audit_service.record_audit(
        db,
        AuditCategory.PASSWORD_RESET_REQUEST,
        actor_id=user.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details="reset token issued",
    )
    logger.info("Password reset token issued for user %s", user.id)

    if not settings.IS_PRODUCTION:
        return {
            "message": DEV_RESET_MESSAGE,
            "token": token,
            "resetUrl": email_service.build_reset_url(token),
        }

    try:
        await email_service.send_password_reset_email(user.email, token)
    except email_service.EMAIL_ERRORS:
        logger.warning("Reset email for user %s could not be sent", user.id)
    return {"message": GENERIC_RESET_MESSAGE}


async def verify_reset_token(token: str, db: AsyncSession) -> bool:
    """True when the token exists, is unused and unexpired.  Never consumes it."""
    if not token:
        return False
    row = await ResetTokenRepository(db).find_valid(token, utcnow())
    return row is not None


async def reset_password(token: str, new_password: str, db: AsyncSession) -> None:
    if not token:
        raise ValidationError("Token and new password are required")
    check_password_strength(new_password)

    tokens = ResetTokenRepository(db)
    row = await tokens.find_valid(token, utcnow(), for_update=True)
    if row is None:
        raise InvalidOrExpiredToken()

    user = await UserRepository(db).get_by_id(row.user_id, for_update=True)
    if user is None:
        # Account was soft-deleted after the token was issued.
        raise InvalidOrExpiredToken()

    user.password_hash = hash_password(new_password)
    await tokens.mark_used(row)
    await session_service.revoke_all_user_sessions(user.id, db)

    await audit_service.record_audit(
        db,
        AuditCategory.PASSWORD_RESET_COMPLETE,
        actor_id=user.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details="password reset via token",
    )
    logger.info("Password reset completed for user %s", user.id)
