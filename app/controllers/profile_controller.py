"""
Profile controller — credential changes for the signed-in user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Principal, get_current_principal
from app.schemas import ChangePasswordRequest, MessageResponse
from app.services import account_service

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await account_service.change_password(
        principal, body.current_password, body.new_password, db,
    )
    await db.commit()
    return MessageResponse(message="Password changed successfully")
