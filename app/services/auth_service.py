"""
Authentication service.

Handles:
- Registration (normalized email, bcrypt digest, ACTIVE by default)
- Login with session-limit enforcement and `jti`-bound JWTs
- Logout (revokes exactly the session named by the token)
- Admin credential tests and forgot-username acknowledgments

Anti-enumeration rules:
- "unknown email" and "wrong password" raise the same InvalidCredentials.
- The account status is only revealed after the password matched.

All business logic lives here — controllers call service methods
and return the result.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AccountNotActive,
    EmailTaken,
    Forbidden,
    InvalidCredentials,
    MissingToken,
    ValidationError,
)
from app.core.security import (
    Principal,
    burn_password_check,
    check_password_bytes,
    create_access_token,
    decode_access_token,
    hash_password,
    new_session_id,
    principal_from_payload,
    verify_password,
)
from app.models.audit_log import AuditCategory
from app.models.user import User, UserRole, UserStatus
from app.repositories.user import UserRepository
from app.services import audit_service, email_service, session_service

logger = logging.getLogger(__name__)

FORGOT_USERNAME_MESSAGE = "If that email exists, instructions have been sent."


# ── Helpers ──────────────────────────────────────────────────────────

def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


def public_user(user: User) -> dict:
    """Public-safe projection — never includes the digest."""
    return {"id": str(user.id), "email": user.email, "role": user.role.value}


def _build_access_payload(user: User, *, jti: str) -> dict:
    return {
        "id": str(user.id),
        "role": user.role.value,
        "sponsor_id": user.sponsor_id,
        "jti": jti,
    }


async def find_user_by_email(email: str, db: AsyncSession) -> User | None:
    """Live (non-deleted) user by email, normalized first."""
    return await UserRepository(db).get_by_email(normalize_email(email))


# ── Register ─────────────────────────────────────────────────────────

async def register_user(
    email: str,
    password: str,
    db: AsyncSession,
    role: UserRole = UserRole.DRIVER,
    username: str | None = None,
) -> User:
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("Missing email or password")
    check_password_bytes(password)

    users = UserRepository(db)
    if await users.email_taken(email):
        raise EmailTaken()

    user = await users.create(
        email=email,
        password_hash=hash_password(password),
        role=role,
        username=(username or "").strip() or None,
    )
    logger.info("Registered user %s (role=%s)", user.id, user.role.value)
    return user


# ── Login ────────────────────────────────────────────────────────────

async def _verify_credentials(email: str, password: str, db: AsyncSession) -> User | None:
    """The user when the password matches a live account, else None."""
    user = await find_user_by_email(email, db)
    if user is None:
        burn_password_check(password)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def authenticate_user(email: str, password: str, db: AsyncSession) -> dict:
    """
    Validate credentials, make room under the session limit, open a
    session and return a signed token bound to it.
    """
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("Missing email or password")

    user = await _verify_credentials(email, password, db)
    if user is None:
        logger.info("Failed login attempt")
        raise InvalidCredentials()

    if user.status != UserStatus.ACTIVE:
        logger.info("Login refused for user %s (status=%s)", user.id, user.status.value)
        raise AccountNotActive(user.status.value)

    jti = new_session_id()
    await session_service.open_session(user.id, jti, db)
    token = create_access_token(_build_access_payload(user, jti=jti))

    logger.info("User %s logged in", user.id)
    return {"token": token, "user": public_user(user)}


# ── Logout ───────────────────────────────────────────────────────────

async def logout(token: str | None, db: AsyncSession) -> bool:
    """
    Revoke the session named by the token.

    Only the signature/expiry is checked here (not the ledger), so
    logging out twice succeeds both times.
    """
    if not token:
        raise MissingToken()
    principal = principal_from_payload(decode_access_token(token))
    revoked = await session_service.revoke_session(principal.id, principal.session_id, db)
    if revoked:
        logger.info("User %s logged out", principal.id)
    return revoked


# ── Admin credential test ────────────────────────────────────────────

async def check_credentials(
    actor: Principal,
    email: str,
    password: str,
    db: AsyncSession,
) -> bool:
    """
    Report whether a credential pair would log in, without revealing
    the password and without opening a session.  Always audited.
    """
    if not actor.is_admin:
        raise Forbidden()
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("email and password required")

    user = await find_user_by_email(email, db)
    if user is None:
        ok, reason = False, "user not found"
    elif user.status != UserStatus.ACTIVE:
        ok, reason = False, f"user not active (status={user.status.value})"
    elif verify_password(password, user.password_hash):
        ok, reason = True, "credentials valid"
    else:
        ok, reason = False, "invalid credentials"

    await audit_service.record_audit(
        db,
        AuditCategory.ADMIN_TEST_LOGIN,
        actor_id=actor.id,
        target_id=user.id if user else None,
        success=ok,
        details=reason,
    )
    return ok


# ── Forgot username ──────────────────────────────────────────────────

async def forgot_username(email: str, db: AsyncSession) -> str:
    """Acknowledge identically whether or not the account exists."""
    email = normalize_email(email)
    if not email:
        raise ValidationError("Invalid email")

    user = await find_user_by_email(email, db)
    if user is not None and settings.IS_PRODUCTION:
        try:
            await email_service.send_username_reminder(user.email, user.username or user.email)
        except email_service.EMAIL_ERRORS:
            logger.warning("Username reminder for user %s could not be sent", user.id)
    return FORGOT_USERNAME_MESSAGE
