"""Authentication routes: email login, license login and self-service."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from fastapi import APIRouter, Depends, Request, status

from edutrack.api.context import RequestIdentity
from edutrack.api.db.accounts import AccountRepository
from edutrack.api.db.tenants import TenantRepository
from edutrack.api.deps import get_account_repo, get_tenant_repo, require_auth
from edutrack.api.middleware import ensure_license_valid, get_token_manager
from edutrack.api.models.schemas import (
    AccountOut,
    LicenseLoginRequest,
    LicenseLoginResponse,
    LoginRequest,
    LoginResponse,
    LoginUser,
    PasswordChange,
)
from edutrack.core.constants import (
    MSG_ACCOUNT_INACTIVE,
    MSG_INVALID_CREDENTIALS,
    MSG_LICENSE_EXPIRED,
    MSG_LICENSE_INACTIVE,
    MSG_LICENSE_KEY_INVALID,
    MSG_LICENSE_KEY_REQUIRED,
    MSG_LICENSE_NO_TENANT,
    MSG_LICENSE_OK,
    MSG_LICENSE_OK_NEEDS_SECRETARY,
    MSG_LOGIN_FIELDS_REQUIRED,
    MSG_PASSWORD_FIELDS_REQUIRED,
)
from edutrack.core.exceptions import BadRequestError, UnauthorizedError
from edutrack.core.logging import get_logger
from edutrack.saas.account import Role
from edutrack.saas.license import LicenseFailure
from edutrack.saas.passwords import hash_password, verify_password
from edutrack.saas.tokens import TokenManager

log = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_LICENSE_KEY_MESSAGES: dict[LicenseFailure, str] = {
    LicenseFailure.EXPIRED: MSG_LICENSE_EXPIRED,
    LicenseFailure.INACTIVE: MSG_LICENSE_INACTIVE,
}


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    accounts: AccountRepository = Depends(get_account_repo),
    tenants: TenantRepository = Depends(get_tenant_repo),
    tokens: TokenManager = Depends(get_token_manager),
) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    if not body.email or not body.password:
        raise BadRequestError(MSG_LOGIN_FIELDS_REQUIRED)

    account = await accounts.find_by_email(body.email)
    if account is None:
        log.warning("login_failed", reason="unknown_email")
        raise UnauthorizedError(MSG_INVALID_CREDENTIALS)

    # Password first, so account and license state are only revealed to
    # callers who already hold the credentials.
    matches = await asyncio.to_thread(verify_password, body.password, account.password_hash)
    if not matches:
        log.warning("login_failed", reason="bad_password", account_id=account.id)
        raise UnauthorizedError(MSG_INVALID_CREDENTIALS)

    if not account.active:
        log.warning("login_failed", reason="account_inactive", account_id=account.id)
        raise UnauthorizedError(MSG_ACCOUNT_INACTIVE)

    tenant = await tenants.find_by_id(account.tenant_id)
    if tenant is None:
        log.warning("login_failed", reason="tenant_missing", account_id=account.id)
        raise UnauthorizedError(MSG_INVALID_CREDENTIALS)

    ensure_license_valid(tenant.license)

    token = tokens.issue(account)
    log.info("login_success", account_id=account.id, tenant_id=account.tenant_id)

    return LoginResponse(
        token=token,
        role=account.role,
        user=LoginUser(id=account.id, name=account.name, email=account.email),
    )


@router.post("/license", response_model=LicenseLoginResponse)
async def license_login(
    body: LicenseLoginRequest,
    accounts: AccountRepository = Depends(get_account_repo),
    tenants: TenantRepository = Depends(get_tenant_repo),
) -> LicenseLoginResponse:
    """Institutional login with a license key. Issues no token."""
    key = body.license_key.strip()
    if not key:
        raise BadRequestError(MSG_LICENSE_KEY_REQUIRED)

    license = await tenants.find_license_by_key(key)
    if license is None:
        log.warning("license_login_failed", reason="unknown_key")
        raise UnauthorizedError(MSG_LICENSE_KEY_INVALID)

    ensure_license_valid(license, _LICENSE_KEY_MESSAGES)

    tenant = await tenants.find_by_license_id(license.id)
    if tenant is None:
        log.warning("license_login_failed", reason="tenant_missing", license_id=license.id)
        raise UnauthorizedError(MSG_LICENSE_NO_TENANT)

    secretaries = await accounts.count_for_tenant(tenant.tenant_id, Role.SECRETARY)
    message = MSG_LICENSE_OK if secretaries else MSG_LICENSE_OK_NEEDS_SECRETARY

    log.info("license_login_success", tenant_id=tenant.tenant_id, secretaries=secretaries)
    return LicenseLoginResponse(
        tenant_id=tenant.tenant_id,
        tenant_name=tenant.name,
        message=message,
    )


@router.get("/me", response_model=AccountOut)
async def get_me(identity: RequestIdentity = Depends(require_auth)) -> AccountOut:
    """Return the current authenticated account."""
    return AccountOut.from_account(identity.account)


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: PasswordChange,
    request: Request,
    identity: RequestIdentity = Depends(require_auth),
    accounts: AccountRepository = Depends(get_account_repo),
) -> None:
    """Self-service password change for the account holder."""
    if not body.current_password or not body.new_password:
        raise BadRequestError(MSG_PASSWORD_FIELDS_REQUIRED)

    account = identity.account
    matches = await asyncio.to_thread(verify_password, body.current_password, account.password_hash)
    if not matches:
        log.warning("password_change_failed", account_id=account.id)
        raise UnauthorizedError(MSG_INVALID_CREDENTIALS)

    rounds = request.app.state.settings.bcrypt_rounds
    new_hash = await asyncio.to_thread(hash_password, body.new_password, rounds)
    await accounts.update(replace(account, password_hash=new_hash))
    log.info("password_changed", account_id=account.id)
