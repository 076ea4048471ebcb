"""DB-backed account (credential) repository."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from edutrack.core.constants import MSG_USER_LIMIT_REACHED
from edutrack.core.exceptions import ConflictError, NotFoundError, UnprocessableError
from edutrack.core.logging import get_logger
from edutrack.data.db import accounts, as_utc, count_rows, lock_tenant_license
from edutrack.saas.account import Account, Role
from edutrack.saas.license import has_capacity

log = get_logger(__name__)

_EMAIL_TAKEN = "The email is already registered."


class AccountRepository:
    """Async storage for login accounts.

    Lookups by ID are deliberately unscoped. Callers compare the row's
    tenant against the caller's to tell "missing" from "not yours".
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_by_id(self, account_id: int) -> Account | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(select(accounts).where(accounts.c.id == account_id))
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_account(row)

    async def find_by_email(self, email: str) -> Account | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(select(accounts).where(accounts.c.email == email))
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_account(row)

    async def list_for_tenant(
        self,
        tenant_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        active: bool | None = None,
        role: Role | None = None,
    ) -> list[Account]:
        """List a tenant's accounts. The tenant filter is always applied."""
        query = select(accounts).where(accounts.c.tenant_id == tenant_id)
        if name:
            query = query.where(accounts.c.name.contains(name, autoescape=True))
        if email:
            query = query.where(accounts.c.email.contains(email, autoescape=True))
        if active is not None:
            query = query.where(accounts.c.active == active)
        if role is not None:
            query = query.where(accounts.c.role == role.value)

        async with self._engine.begin() as conn:
            result = await conn.execute(query.order_by(accounts.c.id))
            rows = result.mappings().all()
        return [self._row_to_account(row) for row in rows]

    async def count_for_tenant(self, tenant_id: str, role: Role | None = None) -> int:
        query = select(func.count()).select_from(accounts).where(accounts.c.tenant_id == tenant_id)
        if role is not None:
            query = query.where(accounts.c.role == role.value)
        async with self._engine.begin() as conn:
            result = await conn.execute(query)
            return int(result.scalar_one())

    async def add(self, account: Account, *, enforce_limit: bool = False) -> Account:
        """Insert an account. Raises ConflictError when the email is taken.

        With ``enforce_limit`` the license's ``max_users`` cap is checked in
        the same transaction as the insert, under a lock on the license row,
        and UnprocessableError is raised when the tenant is full.
        """
        try:
            async with self._engine.begin() as conn:
                if enforce_limit:
                    await self._claim_seat(conn, account.tenant_id)
                result = await conn.execute(
                    insert(accounts).values(**self._account_values(account))
                )
                account_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            log.warning("account_insert_conflict", tenant_id=account.tenant_id)
            raise ConflictError(_EMAIL_TAKEN, context={"tenant_id": account.tenant_id}) from exc

        log.info(
            "account_created",
            account_id=account_id,
            tenant_id=account.tenant_id,
            role=account.role.value,
        )
        return replace(account, id=account_id)

    @staticmethod
    async def _claim_seat(conn: AsyncConnection, tenant_id: str) -> None:
        caps = await lock_tenant_license(conn, tenant_id)
        if caps is None:
            raise NotFoundError("Institution not found.", context={"tenant_id": tenant_id})

        used = await count_rows(conn, accounts, tenant_id)
        if not has_capacity(caps["max_users"], used):
            log.warning("account_limit_reached", tenant_id=tenant_id, max_users=caps["max_users"])
            raise UnprocessableError(MSG_USER_LIMIT_REACHED, context={"tenant_id": tenant_id})

    async def update(self, account: Account) -> Account:
        """Persist changes to an existing account."""
        if account.id is None:
            raise ValueError("Cannot update an account that was never inserted")

        saved = replace(account, updated_at=datetime.now(timezone.utc))
        values = self._account_values(saved)
        values.pop("created_at")
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    update(accounts).where(accounts.c.id == account.id).values(**values)
                )
        except IntegrityError as exc:
            log.warning("account_update_conflict", account_id=account.id)
            raise ConflictError(_EMAIL_TAKEN, context={"account_id": account.id}) from exc

        log.info("account_updated", account_id=account.id, tenant_id=account.tenant_id)
        return saved

    async def delete(self, account_id: int) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(delete(accounts).where(accounts.c.id == account_id))
        except IntegrityError as exc:
            raise ConflictError(
                "The account is still referenced by other records.",
                context={"account_id": account_id},
            ) from exc
        log.info("account_deleted", account_id=account_id)

    # ── Row mapping ───────────────────────────────────────────────

    @staticmethod
    def _account_values(account: Account) -> dict[str, Any]:
        return {
            "name": account.name,
            "email": account.email,
            "password_hash": account.password_hash,
            "role": account.role.value,
            "active": account.active,
            "tenant_id": account.tenant_id,
            "created_at": account.created_at,
            "updated_at": account.updated_at,
        }

    @staticmethod
    def _row_to_account(r: Mapping[str, Any]) -> Account:
        """Convert a DB row mapping to an Account dataclass."""
        return Account(
            id=r["id"],
            name=r["name"],
            email=r["email"],
            password_hash=r["password_hash"],
            role=Role(r["role"]),
            active=bool(r["active"]),
            tenant_id=r["tenant_id"],
            created_at=as_utc(r["created_at"]),
            updated_at=as_utc(r["updated_at"]),
        )
