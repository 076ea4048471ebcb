"""DB-backed career repository."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from edutrack.core.exceptions import ConflictError
from edutrack.core.logging import get_logger
from edutrack.core.types import Career
from edutrack.data.db import as_utc, careers

log = get_logger(__name__)

_CODE_TAKEN = "A career with this code already exists."


class CareerRepository:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_by_id(self, career_id: int) -> Career | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(select(careers).where(careers.c.id == career_id))
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_career(row)

    async def list_for_tenant(
        self,
        tenant_id: str,
        *,
        name: str | None = None,
        active: bool | None = None,
    ) -> list[Career]:
        query = select(careers).where(careers.c.tenant_id == tenant_id)
        if name:
            query = query.where(careers.c.name.contains(name, autoescape=True))
        if active is not None:
            query = query.where(careers.c.active == active)

        async with self._engine.begin() as conn:
            result = await conn.execute(query.order_by(careers.c.name))
            rows = result.mappings().all()
        return [self._row_to_career(row) for row in rows]

    async def count_for_tenant(self, tenant_id: str) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(func.count()).select_from(careers).where(careers.c.tenant_id == tenant_id)
            )
            return int(result.scalar_one())

    async def add(self, career: Career) -> Career:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(insert(careers).values(**self._career_values(career)))
                career_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError(_CODE_TAKEN, context={"code": career.code}) from exc

        log.info("career_created", career_id=career_id, tenant_id=career.tenant_id)
        return replace(career, id=career_id)

    async def update(self, career: Career) -> Career:
        saved = replace(career, updated_at=datetime.now(timezone.utc))
        values = self._career_values(saved)
        values.pop("created_at")
        try:
            async with self._engine.begin() as conn:
                await conn.execute(update(careers).where(careers.c.id == career.id).values(**values))
        except IntegrityError as exc:
            raise ConflictError(_CODE_TAKEN, context={"code": career.code}) from exc

        log.info("career_updated", career_id=career.id, tenant_id=career.tenant_id)
        return saved

    async def delete(self, career_id: int) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(delete(careers).where(careers.c.id == career_id))
        except IntegrityError as exc:
            raise ConflictError(
                "The career still has enrolled students.",
                context={"career_id": career_id},
            ) from exc
        log.info("career_deleted", career_id=career_id)

    @staticmethod
    def _career_values(career: Career) -> dict[str, Any]:
        return {
            "tenant_id": career.tenant_id,
            "name": career.name,
            "code": career.code,
            "description": career.description,
            "duration": career.duration,
            "active": career.active,
            "created_at": career.created_at,
            "updated_at": career.updated_at,
        }

    @staticmethod
    def _row_to_career(r: Mapping[str, Any]) -> Career:
        return Career(
            id=r["id"],
            tenant_id=r["tenant_id"],
            name=r["name"],
            code=r["code"],
            description=r["description"] or "",
            duration=r["duration"],
            active=bool(r["active"]),
            created_at=as_utc(r["created_at"]),
            updated_at=as_utc(r["updated_at"]),
        )
