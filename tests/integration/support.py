"""Seeding helpers for the integration tests.

The TestClient runs the app on its own event loop. Seeding goes through
``client.portal`` so the aiosqlite connection is only ever used on that loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

from edutrack.api.db.tenants import TenantRepository
from edutrack.api.provisioning import ProvisioningService
from edutrack.saas.account import Account, Role
from edutrack.saas.license import LicenseType
from edutrack.saas.tenant import Tenant

PASSWORD = "correct-horse"
TEST_ROUNDS = 4


@dataclass
class School:
    """A seeded tenant with one account per role."""

    tenant: Tenant
    secretary: Account
    teacher: Account
    student: Account


class Harness:
    def __init__(self, client: TestClient, engine: AsyncEngine) -> None:
        self.client = client
        self.engine = engine
        self.provisioning = ProvisioningService(engine, bcrypt_rounds=TEST_ROUNDS)
        self.tenants = TenantRepository(engine)

    def run(self, fn: Any, *args: Any) -> Any:
        return self.client.portal.call(fn, *args)

    def create_tenant(
        self,
        name: str = "Colegio Norte",
        license_type: LicenseType = LicenseType.PRO,
        days: int = 30,
    ) -> Tenant:
        return self.run(self.provisioning.create_tenant, name, license_type, days)

    def create_account(self, tenant: Tenant, email: str, role: Role, name: str = "") -> Account:
        return self.run(
            self.provisioning.create_account,
            tenant.tenant_id,
            name or email.split("@")[0],
            email,
            PASSWORD,
            role,
        )

    def create_school(self, prefix: str, **tenant_kwargs: Any) -> School:
        tenant = self.create_tenant(name=f"School {prefix}", **tenant_kwargs)
        return School(
            tenant=tenant,
            secretary=self.create_account(tenant, f"sec@{prefix}.test", Role.SECRETARY),
            teacher=self.create_account(tenant, f"teacher@{prefix}.test", Role.TEACHER),
            student=self.create_account(tenant, f"student@{prefix}.test", Role.STUDENT),
        )

    def login(self, email: str, password: str = PASSWORD) -> dict[str, str]:
        response = self.client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
