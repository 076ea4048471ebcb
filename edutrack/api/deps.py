"""FastAPI dependencies shared by the routes."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from edutrack.api.context import RequestIdentity
from edutrack.api.db.accounts import AccountRepository
from edutrack.api.db.careers import CareerRepository
from edutrack.api.db.students import StudentRepository
from edutrack.api.db.tenants import TenantRepository
from edutrack.api.middleware import authenticate, get_token_claims
from edutrack.api.provisioning import ProvisioningService
from edutrack.core.constants import MSG_FORBIDDEN
from edutrack.core.exceptions import ForbiddenError
from edutrack.core.logging import get_logger
from edutrack.data.db import get_engine
from edutrack.saas.account import Role
from edutrack.saas.tokens import TokenClaims

log = get_logger(__name__)

# ── Database engine ───────────────────────────────────────────────


async def get_db_engine(request: Request) -> AsyncEngine:
    """Provide the async database engine (the app's own, else the global one)."""
    engine: AsyncEngine | None = getattr(request.app.state, "engine", None)
    if engine is not None:
        return engine
    return await get_engine()


# ── Repositories ──────────────────────────────────────────────────


async def get_tenant_repo(engine: AsyncEngine = Depends(get_db_engine)) -> TenantRepository:
    return TenantRepository(engine)


async def get_account_repo(engine: AsyncEngine = Depends(get_db_engine)) -> AccountRepository:
    return AccountRepository(engine)


async def get_career_repo(engine: AsyncEngine = Depends(get_db_engine)) -> CareerRepository:
    return CareerRepository(engine)


async def get_student_repo(engine: AsyncEngine = Depends(get_db_engine)) -> StudentRepository:
    return StudentRepository(engine)


async def get_provisioning(
    request: Request,
    engine: AsyncEngine = Depends(get_db_engine),
) -> ProvisioningService:
    return ProvisioningService(engine, bcrypt_rounds=request.app.state.settings.bcrypt_rounds)


# ── Auth dependencies ─────────────────────────────────────────────


async def require_auth(
    claims: TokenClaims = Depends(get_token_claims),
    accounts: AccountRepository = Depends(get_account_repo),
    tenants: TenantRepository = Depends(get_tenant_repo),
) -> RequestIdentity:
    """Return the identity of the authenticated caller.

    Re-reads the account and license on every request, so a deactivated
    account or lapsed license stops working before its token expires.
    """
    return await authenticate(claims, accounts, tenants)


def require_role(*roles: Role) -> Callable[..., Awaitable[RequestIdentity]]:
    """Build a dependency that also demands one of ``roles``.

    The role check runs only after every authentication check passed, so a
    caller with an invalid license always sees 401, never 403.
    """

    async def _require_role(identity: RequestIdentity = Depends(require_auth)) -> RequestIdentity:
        if not identity.has_role(*roles):
            log.warning(
                "role_rejected",
                account_id=identity.account_id,
                role=identity.role.value,
                required=[r.value for r in roles],
            )
            raise ForbiddenError(MSG_FORBIDDEN)
        return identity

    return _require_role


require_secretary = require_role(Role.SECRETARY)
require_teacher = require_role(Role.TEACHER)
require_student = require_role(Role.STUDENT)
require_staff = require_role(Role.SECRETARY, Role.TEACHER)
