"""Tenant provisioning — onboarding, license renewal and account creation.

This is the application layer shared by the HTTP routes and by operator
tooling. It owns no state beyond the repositories it wraps.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from edutrack.api.db.accounts import AccountRepository
from edutrack.api.db.careers import CareerRepository
from edutrack.api.db.students import StudentRepository
from edutrack.api.db.tenants import TenantRepository
from edutrack.core.constants import DEFAULT_BCRYPT_ROUNDS
from edutrack.core.exceptions import NotFoundError
from edutrack.core.logging import get_logger
from edutrack.saas.account import Account, Role
from edutrack.saas.license import License, LicenseType, days_to_duration
from edutrack.saas.passwords import hash_password
from edutrack.saas.tenant import Tenant

log = get_logger(__name__)


@dataclass
class TenantStats:
    """Headline numbers for one institution."""

    tenant_id: str
    tenant_name: str
    license_type: LicenseType
    days_remaining: int
    account_count: int = 0
    secretary_count: int = 0
    teacher_count: int = 0
    student_count: int = 0
    career_count: int = 0


class ProvisioningService:
    def __init__(self, engine: AsyncEngine, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._tenants = TenantRepository(engine)
        self._accounts = AccountRepository(engine)
        self._careers = CareerRepository(engine)
        self._students = StudentRepository(engine)
        self._bcrypt_rounds = bcrypt_rounds

    async def create_tenant(
        self,
        name: str,
        license_type: LicenseType,
        license_days: int,
    ) -> Tenant:
        """Onboard an institution with a fresh ID and a new license.

        An ID or key collision is not retried: the storage constraint
        raises ConflictError and the operator runs the command again.
        """
        tenant = Tenant.create(name, license_type, days_to_duration(license_days))
        return await self._tenants.add(tenant)

    async def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self._tenants.find_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError("Institution not found.", context={"tenant_id": tenant_id})
        return tenant

    async def find_tenant_by_license_key(self, key: str) -> Tenant | None:
        license = await self._tenants.find_license_by_key(key)
        if license is None or license.id is None:
            return None
        return await self._tenants.find_by_license_id(license.id)

    async def list_tenants(self) -> list[Tenant]:
        return await self._tenants.list_all()

    async def regenerate_license(self, tenant_id: str, extend_days: int = 0) -> License:
        """Issue a new key for the tenant's license and optionally extend it."""
        tenant = await self.get_tenant(tenant_id)
        tenant.license.regenerate(days_to_duration(extend_days))
        saved = await self._tenants.save_license(tenant.license)
        log.info("license_renewed", tenant_id=tenant_id, extend_days=extend_days)
        return saved

    async def create_account(
        self,
        tenant_id: str,
        name: str,
        email: str,
        password: str,
        role: Role,
    ) -> Account:
        """Create an account inside a tenant, honoring the license user cap.

        The password is hashed before the transaction opens. The cap check and
        the insert then run together under the license row lock.
        """
        await self.get_tenant(tenant_id)

        password_hash = await asyncio.to_thread(hash_password, password, self._bcrypt_rounds)
        account = Account(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            active=True,
            tenant_id=tenant_id,
        )
        return await self._accounts.add(account, enforce_limit=True)

    async def tenant_stats(self, tenant_id: str) -> TenantStats:
        tenant = await self.get_tenant(tenant_id)
        return TenantStats(
            tenant_id=tenant.tenant_id,
            tenant_name=tenant.name,
            license_type=tenant.license.license_type,
            days_remaining=tenant.license.days_until_expiry(),
            account_count=await self._accounts.count_for_tenant(tenant_id),
            secretary_count=await self._accounts.count_for_tenant(tenant_id, Role.SECRETARY),
            teacher_count=await self._accounts.count_for_tenant(tenant_id, Role.TEACHER),
            student_count=await self._students.count_for_tenant(tenant_id),
            career_count=await self._careers.count_for_tenant(tenant_id),
        )
