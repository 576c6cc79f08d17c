"""
Password reset controller — all routes are PUBLIC.

The request route answers the same way whether or not the email is
registered.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import InvalidOrExpiredToken
from app.schemas import (
    MessageResponse,
    ResetPasswordRequest,
    ResetRequest,
    ResetRequestResponse,
    VerifyTokenResponse,
)
from app.services import password_reset_service

router = APIRouter(prefix="/password-reset", tags=["Password reset"])


@router.post("/request", response_model=ResetRequestResponse, response_model_exclude_none=True)
async def request_reset(body: ResetRequest, db: AsyncSession = Depends(get_db)):
    result = await password_reset_service.request_reset(body.email, db)
    await db.commit()
    return result


@router.get("/verify/{token}", response_model=VerifyTokenResponse)
async def verify_token(token: str, db: AsyncSession = Depends(get_db)):
    """Probe a token before showing the new-password form.  Does not consume it."""
    if not await password_reset_service.verify_reset_token(token, db):
        raise InvalidOrExpiredToken()
    return VerifyTokenResponse(valid=True, message="Token is valid")


@router.post("/reset", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await password_reset_service.reset_password(body.token, body.new_password, db)
    await db.commit()
    return MessageResponse(message="Password has been reset successfully")
