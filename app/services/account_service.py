"""
Account lifecycle service — soft delete, restore, deleted listing and
self-service password change.

Rows are never hard-deleted here.  Both delete paths write their audit
entry first, inside the request transaction, so a failed audit aborts
the delete.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AuthenticationError,
    EmailTaken,
    Forbidden,
    NotDeleted,
    NotFoundError,
    SelfActionNotAllowed,
    ValidationError,
)
from app.core.security import Principal, hash_password, verify_password
from app.models.audit_log import AuditCategory
from app.models.user import User
from app.repositories.user import UserRepository
from app.services import audit_service, session_service
from app.services.password_reset_service import check_password_strength

logger = logging.getLogger(__name__)


def deleted_account_view(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "deleted_at": user.deleted_at.isoformat() if user.deleted_at else None,
        "deleted_by": str(user.deleted_by) if user.deleted_by else None,
    }


def _require_admin(actor: Principal) -> None:
    if not actor.is_admin:
        logger.warning("Non-admin %s attempted an admin account action", actor.id)
        raise Forbidden()


# ── Self-service delete ──────────────────────────────────────────────

async def delete_account(principal: Principal, password: str | None, db: AsyncSession) -> None:
    if not password:
        raise ValidationError("Password is required to delete your account")

    users = UserRepository(db)
    user = await users.get_by_id(principal.id, for_update=True)
    if user is None:
        raise NotFoundError()
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid password")

    await audit_service.record_audit(
        db,
        AuditCategory.ACCOUNT_DELETED,
        actor_id=user.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"user {user.email} deleted their own account",
        required=True,
    )
    await users.soft_delete(user, deleted_by=user.id)
    await session_service.revoke_all_user_sessions(user.id, db)
    logger.info("User %s deleted their account", user.id)


# ── Admin operations ─────────────────────────────────────────────────

async def admin_delete_account(actor: Principal, user_id: uuid.UUID, db: AsyncSession) -> User:
    """Soft-delete another user.  Returns the deleted row."""
    _require_admin(actor)
    if user_id == actor.id:
        raise SelfActionNotAllowed("Cannot delete your own admin account")

    users = UserRepository(db)
    user = await users.get_by_id(user_id, for_update=True)
    if user is None:
        raise NotFoundError()

    await audit_service.record_audit(
        db,
        AuditCategory.ADMIN_DELETED_USER,
        actor_id=actor.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"admin deleted user {user.email}",
        required=True,
    )
    await users.soft_delete(user, deleted_by=actor.id)
    await session_service.revoke_all_user_sessions(user.id, db)
    logger.info("Admin %s deleted user %s", actor.id, user.id)
    return user


async def admin_restore_account(actor: Principal, user_id: uuid.UUID, db: AsyncSession) -> User:
    _require_admin(actor)

    users = UserRepository(db)
    user = await users.get_by_id_include_deleted(user_id, for_update=True)
    if user is None:
        raise NotFoundError()
    if not user.is_deleted:
        raise NotDeleted()
    if await users.email_taken(user.email, exclude_user_id=user.id):
        raise EmailTaken("Email is now used by another account")

    await users.restore(user)
    await audit_service.record_audit(
        db,
        AuditCategory.ADMIN_RESTORED_USER,
        actor_id=actor.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details=f"admin restored user {user.email}",
    )
    logger.info("Admin %s restored user %s", actor.id, user.id)
    return user


async def list_deleted_accounts(actor: Principal, db: AsyncSession) -> list[User]:
    _require_admin(actor)
    return await UserRepository(db).list_deleted()


# ── Password change ──────────────────────────────────────────────────

async def change_password(
    principal: Principal,
    current_password: str | None,
    new_password: str | None,
    db: AsyncSession,
) -> None:
    check_password_strength(new_password)
    if not current_password:
        raise ValidationError("Current password is required")

    user = await UserRepository(db).get_by_id(principal.id, for_update=True)
    if user is None:
        raise NotFoundError()
    if not verify_password(current_password, user.password_hash):
        logger.info("Password change refused for user %s (wrong current password)", user.id)
        raise AuthenticationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    await db.flush()
    await audit_service.record_audit(
        db,
        AuditCategory.PASSWORD_CHANGE,
        actor_id=user.id,
        target_id=user.id,
        sponsor_id=user.sponsor_id,
        details="password changed",
    )
    logger.info("User %s changed their password", user.id)
