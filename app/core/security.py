"""
Password hashing, JWT helpers & the Session Gate.

- Passwords are hashed with bcrypt directly (passlib is unmaintained
  and broken with bcrypt>=4.1).
- JWTs carry `id`, `role`, `sponsor_id`, `jti` and `exp`.
- Token verification validates against the server-side session ledger
  on EVERY request (hybrid stateful JWT), so logout, eviction and admin
  actions take effect on the very next call.
"""

import functools
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import InvalidToken, MalformedToken, MissingToken, SessionRevoked, WeakPassword
from app.models.user import UserRole
from app.repositories.session import SessionRepository

logger = logging.getLogger(__name__)

# ── Password hashing ────────────────────────────────────────────────


# bcrypt refuses secrets longer than this, counted in UTF-8 bytes.
PASSWORD_MAX_BYTES = 72


def check_password_bytes(plain: str) -> None:
    if len(plain.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise WeakPassword(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")


def hash_password(plain: str) -> str:
    check_password_bytes(plain)
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed digest or a password bcrypt refuses (> 72 bytes).
        return False


@functools.lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_hex(16))


def burn_password_check(plain: str) -> None:
    """Spend one bcrypt comparison so unknown emails cost as much as known ones."""
    verify_password(plain, _dummy_hash())


# ── Random identifiers ──────────────────────────────────────────────


def new_session_id() -> str:
    """128-bit random hex `jti`."""
    return secrets.token_hex(16)


# ── JWT ──────────────────────────────────────────────────────────────
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode & validate signature and expiry.  Raises InvalidToken on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise InvalidToken()


# ── Session Gate ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as exposed to protected operations."""

    id: uuid.UUID
    role: UserRole
    sponsor_id: int | None
    session_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def principal_from_payload(payload: dict[str, Any]) -> Principal:
    """Extract the session identity from a verified payload."""
    jti = payload.get("jti")
    if not jti:
        raise MalformedToken()
    try:
        user_id = uuid.UUID(str(payload["id"]))
        role = UserRole(payload["role"])
    except (KeyError, ValueError):
        raise MalformedToken("invalid token payload")
    return Principal(
        id=user_id,
        role=role,
        sponsor_id=payload.get("sponsor_id"),
        session_id=str(jti),
    )


async def resolve_principal(token: str | None, db: AsyncSession) -> Principal:
    """
    Validate a bearer token against the signature AND the session ledger.

    Checks performed, in order:
      1. Token present.
      2. JWT signature & expiry (no DB round-trip).
      3. Payload carries a session id (`jti`) and identity.
      4. A non-revoked session row exists for (user, jti).

    Nothing is cached between requests.
    """
    if not token:
        raise MissingToken()

    payload = decode_access_token(token)
    principal = principal_from_payload(payload)

    session = await SessionRepository(db).get_active(principal.id, principal.session_id)
    if session is None:
        logger.info("Rejected revoked session for user %s", principal.id)
        raise SessionRevoked()

    return principal


async def get_current_principal(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """FastAPI dependency — the Session Gate for every protected route."""
    return await resolve_principal(token, db)
