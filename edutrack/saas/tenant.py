"""Tenants own a license and scope every record."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from edutrack.core.constants import TENANT_ID_BYTES
from edutrack.core.exceptions import TenantIdGenerationError
from edutrack.core.logging import get_logger
from edutrack.saas.license import License, LicenseType

log = get_logger(__name__)


def generate_tenant_id() -> str:
    """Generate a public tenant ID: 8 lowercase hex characters.

    Collisions are not retried here. The storage primary key rejects the
    second writer.
    """
    try:
        return secrets.token_hex(TENANT_ID_BYTES)
    except (OSError, NotImplementedError) as exc:
        log.error("tenant_id_generation_failed", error=str(exc))
        raise TenantIdGenerationError("Failed to generate tenant ID") from exc


@dataclass
class Tenant:
    """An institution in the system."""

    tenant_id: str
    name: str
    license: License
    logo_url: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    deleted_at: datetime | None = None

    @classmethod
    def create(
        cls,
        name: str,
        license_type: LicenseType,
        license_duration: timedelta,
    ) -> Tenant:
        """Build a new tenant with a fresh ID and a newly issued license."""
        tenant = cls(
            tenant_id=generate_tenant_id(),
            name=name,
            license=License.create(license_type, license_duration),
        )
        log.info(
            "tenant_built",
            tenant_id=tenant.tenant_id,
            name=name,
            license_type=license_type.value,
        )
        return tenant

    @property
    def is_active(self) -> bool:
        """A tenant is usable while its license is valid."""
        return self.license.is_valid()

    @property
    def license_key(self) -> str:
        return self.license.key
