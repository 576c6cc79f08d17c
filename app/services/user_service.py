"""
User service — lookups, profile credential edits and admin disable.

Username and e-mail edits are limited to the account owner or an admin.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    EmailTaken,
    Forbidden,
    NotFoundError,
    SelfActionNotAllowed,
    ValidationError,
)
from app.core.security import Principal
from app.models.audit_log import AuditCategory
from app.models.user import User, UserStatus
from app.repositories.user import UserRepository
from app.services import audit_service, session_service
from app.services.auth_service import normalize_email

logger = logging.getLogger(__name__)


async def get_user_by_id(user_id: uuid.UUID, db: AsyncSession, *, for_update: bool = False) -> User:
    user = await UserRepository(db).get_by_id(user_id, for_update=for_update)
    if user is None:
        raise NotFoundError()
    return user


def _require_self_or_admin(actor: Principal, user_id: uuid.UUID) -> None:
    if actor.id != user_id and not actor.is_admin:
        logger.warning("User %s tried to edit user %s", actor.id, user_id)
        raise Forbidden()


async def change_username(
    actor: Principal,
    user_id: uuid.UUID,
    username: str | None,
    db: AsyncSession,
) -> User:
    _require_self_or_admin(actor, user_id)
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")

    user = await get_user_by_id(user_id, db, for_update=True)
    old = user.username
    user.username = username
    await UserRepository(db).update(user)

    await audit_service.record_audit(
        db,
        AuditCategory.USERNAME_CHANGE,
        actor_id=actor.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"username changed from {old!r} to {username!r}",
    )
    return user


async def change_email(
    actor: Principal,
    user_id: uuid.UUID,
    email: str | None,
    db: AsyncSession,
) -> User:
    _require_self_or_admin(actor, user_id)
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    users = UserRepository(db)
    user = await get_user_by_id(user_id, db, for_update=True)
    if email == user.email:
        return user
    if await users.email_taken(email, exclude_user_id=user.id):
        raise EmailTaken()

    old = user.email
    user.email = email
    await users.update(user)

    await audit_service.record_audit(
        db,
        AuditCategory.EMAIL_CHANGE,
        actor_id=actor.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"email changed from {old} to {email}",
    )
    return user


async def disable_user(actor: Principal, target_user_id: uuid.UUID, db: AsyncSession) -> User:
    """Admin action — disable a user account and invalidate all sessions."""
    if not actor.is_admin:
        raise Forbidden()
    if target_user_id == actor.id:
        raise SelfActionNotAllowed("Cannot disable your own admin account")

    user = await get_user_by_id(target_user_id, db, for_update=True)
    user.status = UserStatus.DISABLED
    await UserRepository(db).update(user)
    revoked = await session_service.revoke_all_user_sessions(target_user_id, db)

    await audit_service.record_audit(
        db,
        AuditCategory.ADMIN_DISABLED_USER,
        actor_id=actor.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"disabled; {revoked} session(s) revoked",
        required=True,
    )
    logger.info("Admin %s disabled user %s", actor.id, user.id)
    return user
