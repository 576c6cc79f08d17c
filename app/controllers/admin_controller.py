"""
Admin controller — credential test, user disable & audit trail.

Every route uses `Depends(require_admin)` for enforcement.
Controllers are THIN — they delegate to services and return schemas.

Architecture note:
    We inject the `Principal` from `require_admin` so the services get
    the acting admin's identity without a second DB call.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Principal
from app.rbac.dependencies import require_admin
from app.schemas import (
    AuditLogOut,
    AuditLogPage,
    CredentialCheckRequest,
    MessageResponse,
    OkResponse,
)
from app.services import audit_service, auth_service, user_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/test-login", response_model=OkResponse)
async def test_login(
    body: CredentialCheckRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Check whether a credential pair would log in, without opening a session."""
    ok = await auth_service.check_credentials(principal, body.email, body.password, db)
    await db.commit()
    return OkResponse(ok=ok)


@router.post("/users/{user_id}/disable", response_model=MessageResponse)
async def disable_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Disable a user account and revoke all of its sessions."""
    await user_service.disable_user(principal, user_id, db)
    await db.commit()
    return MessageResponse(message="User disabled and sessions revoked")


@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    category: str | None = Query(None),
    limit: int = Query(100, ge=1, le=audit_service.MAX_AUDIT_PAGE),
):
    entries = await audit_service.list_audit_logs(db, category=category, limit=limit)
    return AuditLogPage(
        count=len(entries),
        entries=[AuditLogOut.model_validate(e) for e in entries],
    )
