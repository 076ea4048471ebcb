"""DB-backed tenant and license repository."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from edutrack.core.exceptions import ConflictError
from edutrack.core.logging import get_logger
from edutrack.data.db import as_utc, licenses, tenants
from edutrack.saas.license import License, LicenseType
from edutrack.saas.tenant import Tenant

log = get_logger(__name__)


class TenantRepository:
    """Async storage for tenants and the license each one owns."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def add(self, tenant: Tenant) -> Tenant:
        """Insert a tenant and its license in one transaction.

        Raises ConflictError when the tenant ID or license key is taken.
        """
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(
                    insert(licenses).values(**self._license_values(tenant.license))
                )
                license_id = result.inserted_primary_key[0]
                await conn.execute(
                    insert(tenants).values(
                        tenant_id=tenant.tenant_id,
                        name=tenant.name,
                        logo_url=tenant.logo_url,
                        license_id=license_id,
                        created_at=tenant.created_at,
                        updated_at=tenant.updated_at,
                        deleted_at=tenant.deleted_at,
                    )
                )
        except IntegrityError as exc:
            log.warning("tenant_insert_conflict", tenant_id=tenant.tenant_id)
            raise ConflictError(
                "The institution ID or license key already exists.",
                context={"tenant_id": tenant.tenant_id},
            ) from exc

        tenant.license.id = license_id
        log.info(
            "tenant_created",
            tenant_id=tenant.tenant_id,
            name=tenant.name,
            license_type=tenant.license.license_type.value,
        )
        return tenant

    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        """Look up a tenant (with its license) by public ID."""
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(tenants).where(
                    tenants.c.tenant_id == tenant_id,
                    tenants.c.deleted_at.is_(None),
                )
            )
            row = result.mappings().first()
            if row is None:
                return None
            return await self._load(conn, row)

    async def find_by_license_id(self, license_id: int) -> Tenant | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(tenants).where(
                    tenants.c.license_id == license_id,
                    tenants.c.deleted_at.is_(None),
                )
            )
            row = result.mappings().first()
            if row is None:
                return None
            return await self._load(conn, row)

    async def find_license_by_key(self, key: str) -> License | None:
        """Look up a license by its key, regardless of validity."""
        async with self._engine.begin() as conn:
            result = await conn.execute(select(licenses).where(licenses.c.key == key))
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_license(row)

    async def list_all(self) -> list[Tenant]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(tenants)
                .where(tenants.c.deleted_at.is_(None))
                .order_by(tenants.c.created_at)
            )
            rows = result.mappings().all()
            return [await self._load(conn, row) for row in rows]

    async def save_license(self, license: License) -> License:
        """Persist license changes. Raises ConflictError on a duplicate key."""
        if license.id is None:
            raise ValueError("Cannot save a license that was never inserted")

        license.updated_at = datetime.now(timezone.utc)
        values = self._license_values(license)
        values.pop("created_at")
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    update(licenses).where(licenses.c.id == license.id).values(**values)
                )
        except IntegrityError as exc:
            log.warning("license_update_conflict", license_id=license.id)
            raise ConflictError(
                "The license key already exists.",
                context={"license_id": license.id},
            ) from exc

        log.info("license_saved", license_id=license.id, active=license.active)
        return license

    # ── Row mapping ───────────────────────────────────────────────

    async def _load(self, conn: AsyncConnection, row: Mapping[str, Any]) -> Tenant:
        result = await conn.execute(
            select(licenses).where(licenses.c.id == row["license_id"])
        )
        license_row = result.mappings().one()
        return self._row_to_tenant(row, self._row_to_license(license_row))

    @staticmethod
    def _license_values(license: License) -> dict[str, Any]:
        return {
            "key": license.key,
            "license_type": license.license_type.value,
            "expiry_at": license.expiry_at,
            "max_users": license.max_users,
            "max_students": license.max_students,
            "max_courses": license.max_courses,
            "active": license.active,
            "notes": license.notes,
            "created_at": license.created_at,
            "updated_at": license.updated_at,
        }

    @staticmethod
    def _row_to_license(r: Mapping[str, Any]) -> License:
        """Convert a DB row mapping to a License dataclass."""
        return License(
            id=r["id"],
            key=r["key"],
            license_type=LicenseType(r["license_type"]),
            expiry_at=as_utc(r["expiry_at"]),
            max_users=r["max_users"],
            max_students=r["max_students"],
            max_courses=r["max_courses"],
            active=bool(r["active"]),
            notes=r["notes"] or "",
            created_at=as_utc(r["created_at"]),
            updated_at=as_utc(r["updated_at"]),
        )

    @staticmethod
    def _row_to_tenant(r: Mapping[str, Any], license: License) -> Tenant:
        """Convert a DB row mapping to a Tenant dataclass."""
        return Tenant(
            tenant_id=r["tenant_id"],
            name=r["name"],
            logo_url=r["logo_url"] or "",
            license=license,
            created_at=as_utc(r["created_at"]),
            updated_at=as_utc(r["updated_at"]),
            deleted_at=as_utc(r["deleted_at"]),
        )
