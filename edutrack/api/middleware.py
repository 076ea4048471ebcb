"""Bearer-token authentication for FastAPI.

The gate runs in two steps. ``get_token_claims`` proves the token is
authentic and unexpired. ``authenticate`` then reloads the account and its
tenant from storage, so deactivation and license expiry apply to the very
next request instead of at token expiry.
"""

from __future__ import annotations

from fastapi import Depends, Request

from edutrack.api.context import RequestIdentity
from edutrack.api.db.accounts import AccountRepository
from edutrack.api.db.tenants import TenantRepository
from edutrack.core.constants import (
    BEARER_SCHEME,
    MSG_ACCOUNT_INACTIVE,
    MSG_TENANT_LICENSE_EXPIRED,
    MSG_TENANT_LICENSE_INACTIVE,
    MSG_UNAUTHORIZED,
)
from edutrack.core.exceptions import UnauthorizedError
from edutrack.core.logging import get_logger
from edutrack.saas.license import License, LicenseFailure
from edutrack.saas.tokens import TokenClaims, TokenManager

log = get_logger(__name__)

_TENANT_LICENSE_MESSAGES: dict[LicenseFailure, str] = {
    LicenseFailure.EXPIRED: MSG_TENANT_LICENSE_EXPIRED,
    LicenseFailure.INACTIVE: MSG_TENANT_LICENSE_INACTIVE,
}


def get_token_manager(request: Request) -> TokenManager:
    """The TokenManager built from settings when the app was created."""
    return request.app.state.token_manager


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme != BEARER_SCHEME or not token:
        return None
    return token


def ensure_license_valid(license: License, messages: dict[LicenseFailure, str] | None = None) -> None:
    """Raise UnauthorizedError naming whether the license expired or was deactivated."""
    reason = license.failure_reason()
    if reason is None:
        return

    messages = messages or _TENANT_LICENSE_MESSAGES
    log.warning("license_rejected", license_id=license.id, reason=reason.value)
    raise UnauthorizedError(messages[reason], context={"reason": reason.value})


async def get_token_claims(
    request: Request,
    token_manager: TokenManager = Depends(get_token_manager),
) -> TokenClaims:
    """Extract and verify the bearer token from the Authorization header."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        log.warning("auth_rejected", reason="missing_token", path=request.url.path)
        raise UnauthorizedError(MSG_UNAUTHORIZED)

    claims = token_manager.verify(token)
    if claims is None:
        log.warning("auth_rejected", reason="invalid_token", path=request.url.path)
        raise UnauthorizedError(MSG_UNAUTHORIZED)

    return claims


async def authenticate(
    claims: TokenClaims,
    accounts: AccountRepository,
    tenants: TenantRepository,
) -> RequestIdentity:
    """Reload the account behind verified claims and apply the live checks."""
    account = await accounts.find_by_id(claims.account_id)
    if account is None or account.tenant_id != claims.tenant_id:
        log.warning("auth_rejected", reason="account_missing", account_id=claims.account_id)
        raise UnauthorizedError(MSG_UNAUTHORIZED)

    if not account.active:
        log.warning("auth_rejected", reason="account_inactive", account_id=account.id)
        raise UnauthorizedError(MSG_ACCOUNT_INACTIVE)

    tenant = await tenants.find_by_id(account.tenant_id)
    if tenant is None:
        log.warning("auth_rejected", reason="tenant_missing", tenant_id=account.tenant_id)
        raise UnauthorizedError(MSG_UNAUTHORIZED)

    ensure_license_valid(tenant.license)

    return RequestIdentity(account=account, tenant=tenant)
