"""Account endpoints."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from fastapi import APIRouter, Depends, Request, Response, status

from edutrack.api.context import RequestIdentity
from edutrack.api.db.accounts import AccountRepository
from edutrack.api.deps import get_account_repo, get_provisioning, require_auth, require_secretary
from edutrack.api.models.schemas import AccountCreate, AccountOut, AccountUpdate
from edutrack.api.provisioning import ProvisioningService
from edutrack.api.scoping import ensure_subject, load_scoped
from edutrack.core.constants import MSG_CANNOT_DELETE_SELF, MSG_FORBIDDEN
from edutrack.core.exceptions import BadRequestError, ForbiddenError
from edutrack.core.logging import get_logger
from edutrack.saas.passwords import hash_password

log = get_logger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountOut])
async def list_accounts(
    name: str | None = None,
    email: str | None = None,
    active: bool | None = None,
    identity: RequestIdentity = Depends(require_secretary),
    accounts: AccountRepository = Depends(get_account_repo),
) -> list[AccountOut]:
    """List the accounts of the caller's institution."""
    found = await accounts.list_for_tenant(
        identity.tenant_id, name=name, email=email, active=active
    )
    return [AccountOut.from_account(a) for a in found]


@router.get("/{account_id}", response_model=AccountOut)
async def get_account(
    account_id: int,
    identity: RequestIdentity = Depends(require_auth),
    accounts: AccountRepository = Depends(get_account_repo),
) -> AccountOut:
    account = load_scoped(await accounts.find_by_id(account_id), identity, "account", account_id)
    ensure_subject(identity, account.id, "account")
    return AccountOut.from_account(account)


@router.post("", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
async def create_account(
    body: AccountCreate,
    identity: RequestIdentity = Depends(require_secretary),
    provisioning: ProvisioningService = Depends(get_provisioning),
) -> AccountOut:
    """Create an account inside the caller's institution."""
    if not body.name or not body.email or not body.password or body.role is None:
        raise BadRequestError("Name, email, password and role are required.")

    account = await provisioning.create_account(
        identity.tenant_id, body.name, body.email, body.password, body.role
    )
    return AccountOut.from_account(account)


@router.put("/{account_id}", response_model=AccountOut)
async def update_account(
    account_id: int,
    body: AccountUpdate,
    request: Request,
    identity: RequestIdentity = Depends(require_auth),
    accounts: AccountRepository = Depends(get_account_repo),
) -> AccountOut:
    """Update an account.

    Secretaries may edit any account of their institution. Everyone else
    may only edit their own name, email and password.
    """
    existing = load_scoped(await accounts.find_by_id(account_id), identity, "account", account_id)

    if not identity.account.is_secretary:
        if existing.id != identity.account_id:
            raise ForbiddenError(MSG_FORBIDDEN)
        if body.active is not None or body.role is not None:
            log.warning("self_privilege_change_denied", account_id=identity.account_id)
            raise ForbiddenError(MSG_FORBIDDEN)

    changes: dict[str, object] = {}
    if body.name is not None:
        if not body.name:
            raise BadRequestError("The name cannot be empty.")
        changes["name"] = body.name
    if body.email is not None:
        if not body.email:
            raise BadRequestError("The email cannot be empty.")
        changes["email"] = body.email
    if body.password is not None:
        if not body.password:
            raise BadRequestError("The password cannot be empty.")
        rounds = request.app.state.settings.bcrypt_rounds
        changes["password_hash"] = await asyncio.to_thread(hash_password, body.password, rounds)
    if body.active is not None:
        changes["active"] = body.active
    if body.role is not None:
        changes["role"] = body.role

    updated = await accounts.update(replace(existing, **changes))
    return AccountOut.from_account(updated)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: int,
    identity: RequestIdentity = Depends(require_secretary),
    accounts: AccountRepository = Depends(get_account_repo),
) -> Response:
    existing = load_scoped(await accounts.find_by_id(account_id), identity, "account", account_id)

    if existing.id == identity.account_id:
        raise BadRequestError(MSG_CANNOT_DELETE_SELF)

    await accounts.delete(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
