"""
Auth controller — register, login, logout & account identifiers.

Register, login and forgot-username are PUBLIC.
Logout needs a correctly signed token (it is idempotent, so the ledger
is not consulted); the username/email edits pass the full Session Gate.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import Forbidden
from app.core.security import Principal, get_current_principal, oauth2_scheme
from app.models.user import UserRole
from app.schemas import (
    EmailChangeRequest,
    ForgotUsernameRequest,
    LoginRequest,
    LoginResponse,
    OkMessageResponse,
    OkResponse,
    RegisterRequest,
    UsernameChangeRequest,
)
from app.services import auth_service, user_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=OkResponse)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an ACTIVE driver or sponsor account."""
    if body.role == UserRole.ADMIN:
        raise Forbidden("Admin accounts cannot be self-registered")
    await auth_service.register_user(
        body.email, body.password, db, role=body.role, username=body.username,
    )
    await db.commit()
    return OkResponse()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate with email + password → receive a session-bound JWT."""
    result = await auth_service.authenticate_user(body.email, body.password, db)
    await db.commit()
    return LoginResponse(token=result["token"], user=result["user"])


@router.post("/logout", response_model=OkResponse)
async def logout(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the session this token belongs to (server-side logout)."""
    await auth_service.logout(token, db)
    await db.commit()
    return OkResponse()


@router.patch("/users/{user_id}/username", response_model=OkResponse)
async def change_username(
    user_id: uuid.UUID,
    body: UsernameChangeRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_username(principal, user_id, body.username, db)
    await db.commit()
    return OkResponse()


@router.patch("/users/{user_id}/email", response_model=OkResponse)
async def change_email(
    user_id: uuid.UUID,
    body: EmailChangeRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_email(principal, user_id, body.email, db)
    await db.commit()
    return OkResponse()


@router.post("/forgot-username", response_model=OkMessageResponse)
async def forgot_username(body: ForgotUsernameRequest, db: AsyncSession = Depends(get_db)):
    message = await auth_service.forgot_username(body.email, db)
    return OkMessageResponse(message=message)
