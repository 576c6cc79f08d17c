"""
Pydantic schemas for request / response serialization.

Kept in a single file for now — split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.

Request bodies use the camelCase field names the web client sends
(`newPassword`, `currentPassword`); snake_case is accepted as well.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.user import UserRole

# Character cap for request bodies; the 72-byte bcrypt limit is
# checked by `security.check_password_bytes`.
PASSWORD_MAX_LENGTH = 72


# ── Auth ─────────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)
    role: UserRole = UserRole.DRIVER
    username: str | None = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(max_length=PASSWORD_MAX_LENGTH)


class PublicUser(BaseModel):
    id: str
    email: str
    role: str


class LoginResponse(BaseModel):
    ok: bool = True
    token: str
    user: PublicUser


class OkResponse(BaseModel):
    ok: bool = True


class OkMessageResponse(BaseModel):
    ok: bool = True
    message: str


class MessageResponse(BaseModel):
    message: str


class UsernameChangeRequest(BaseModel):
    username: str = Field(max_length=100)


class EmailChangeRequest(BaseModel):
    email: str = Field(max_length=255)


class ForgotUsernameRequest(BaseModel):
    email: str


# ── Password reset ───────────────────────────────────────────────────
class ResetRequest(BaseModel):
    email: str


class ResetRequestResponse(BaseModel):
    message: str
    token: str | None = None
    resetUrl: str | None = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str = Field(alias="newPassword", max_length=PASSWORD_MAX_LENGTH)


class VerifyTokenResponse(BaseModel):
    valid: bool
    message: str


# ── Account lifecycle ────────────────────────────────────────────────
class DeleteAccountRequest(BaseModel):
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LENGTH)


class AccountSummary(BaseModel):
    id: uuid.UUID
    username: str | None = None
    email: str

    model_config = {"from_attributes": True}


class AdminDeleteResponse(BaseModel):
    message: str
    deletedUser: AccountSummary


class AdminRestoreResponse(BaseModel):
    message: str
    restoredUser: AccountSummary


class DeletedAccountOut(BaseModel):
    id: str
    username: str | None = None
    email: str
    role: str
    deleted_at: str | None = None
    deleted_by: str | None = None


class DeletedAccountsResponse(BaseModel):
    count: int
    deletedAccounts: list[DeletedAccountOut]


# ── Profile ──────────────────────────────────────────────────────────
class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword", max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(alias="newPassword", max_length=PASSWORD_MAX_LENGTH)


# ── Admin ────────────────────────────────────────────────────────────
class CredentialCheckRequest(BaseModel):
    email: str
    password: str = Field(max_length=PASSWORD_MAX_LENGTH)


class AuditLogOut(BaseModel):
    id: int
    created_at: datetime
    category: str
    actor_user_id: uuid.UUID | None = None
    target_user_id: uuid.UUID | None = None
    sponsor_id: int | None = None
    success: bool
    details: str | None = None

    model_config = {"from_attributes": True}


class AuditLogPage(BaseModel):
    count: int
    entries: list[AuditLogOut]
