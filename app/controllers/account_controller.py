"""
Account controller — self-service deletion and the admin soft-delete
console (delete, restore, list deleted).
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Principal, get_current_principal
from app.rbac.dependencies import require_admin
from app.schemas import (
    AccountSummary,
    AdminDeleteResponse,
    AdminRestoreResponse,
    DeleteAccountRequest,
    DeletedAccountOut,
    DeletedAccountsResponse,
    MessageResponse,
)
from app.services import account_service

router = APIRouter(prefix="/account", tags=["Account"])


@router.delete("", response_model=MessageResponse)
async def delete_own_account(
    body: DeleteAccountRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete the caller's own account after re-checking the password."""
    password = body.password if body else None
    await account_service.delete_account(principal, password, db)
    await db.commit()
    return MessageResponse(message="Account deleted successfully")


# Static path first so "deleted" is never parsed as a user id.
@router.get("/admin/deleted", response_model=DeletedAccountsResponse)
async def list_deleted_accounts(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users = await account_service.list_deleted_accounts(principal, db)
    accounts = [DeletedAccountOut(**account_service.deleted_account_view(u)) for u in users]
    return DeletedAccountsResponse(count=len(accounts), deletedAccounts=accounts)


@router.delete("/admin/{user_id}", response_model=AdminDeleteResponse)
async def admin_delete_account(
    user_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await account_service.admin_delete_account(principal, user_id, db)
    await db.commit()
    return AdminDeleteResponse(
        message="User account deleted successfully",
        deletedUser=AccountSummary.model_validate(user),
    )


@router.post("/admin/{user_id}/restore", response_model=AdminRestoreResponse)
async def admin_restore_account(
    user_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await account_service.admin_restore_account(principal, user_id, db)
    await db.commit()
    return AdminRestoreResponse(
        message="User account restored successfully",
        restoredUser=AccountSummary.model_validate(user),
    )
