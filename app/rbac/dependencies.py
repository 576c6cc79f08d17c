"""
Role gates — run right after the Session Gate on protected routes.

`require_role` is a *dependency factory*: call it with one or more
roles and it returns a FastAPI dependency that will:

1. Resolve the caller through `get_current_principal` (token + ledger).
2. Compare the principal's role against the allowed set.
3. Return 403 on mismatch, with a message that says nothing about the
   resource or the roles involved.

Usage in a route:
    @router.get("/admin/things", dependencies=[Depends(require_admin)])
    async def list_things(...): ...

Or inject the principal:
    @router.get("/mine")
    async def mine(principal: Principal = Depends(require_role(UserRole.DRIVER))): ...
"""

import logging

from fastapi import Depends

from app.core.errors import Forbidden
from app.core.security import Principal, get_current_principal
from app.models.user import UserRole

logger = logging.getLogger("rbac")


class require_role:
    """
    Dependency factory.

    Can be used as:
        Depends(require_role(UserRole.ADMIN))
        Depends(require_role(UserRole.SPONSOR, UserRole.ADMIN))
    """

    def __init__(self, *roles: UserRole):
        self.allowed = frozenset(roles)

    async def __call__(
        self,
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in self.allowed:
            logger.warning(
                "Role denied for user %s (role=%s, allowed=%s)",
                principal.id,
                principal.role.value,
                sorted(r.value for r in self.allowed),
            )
            # Intentionally vague
            raise Forbidden()
        return principal


require_admin = require_role(UserRole.ADMIN)
require_driver = require_role(UserRole.DRIVER)
require_sponsor = require_role(UserRole.SPONSOR)
