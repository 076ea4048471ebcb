"""DB-backed student repository."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from edutrack.core.constants import MSG_STUDENT_LIMIT_REACHED
from edutrack.core.exceptions import ConflictError, NotFoundError, UnprocessableError
from edutrack.core.logging import get_logger
from edutrack.core.types import Student
from edutrack.data.db import as_utc, count_rows, lock_tenant_license, students
from edutrack.saas.license import has_capacity

log = get_logger(__name__)

_STUDENT_ID_TAKEN = "A student with this registration number already exists."
_ALREADY_ENROLLED = "The registration number or the account is already enrolled."


class StudentRepository:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_by_id(self, student_pk: int) -> Student | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(select(students).where(students.c.id == student_pk))
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_student(row)

    async def find_by_account_id(self, account_id: int) -> Student | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(students).where(students.c.account_id == account_id)
            )
            row = result.mappings().first()
        if row is None:
            return None
        return self._row_to_student(row)

    async def list_for_tenant(
        self,
        tenant_id: str,
        *,
        career_id: int | None = None,
        semester: int | None = None,
        student_id: str | None = None,
    ) -> list[Student]:
        query = select(students).where(students.c.tenant_id == tenant_id)
        if career_id is not None:
            query = query.where(students.c.career_id == career_id)
        if semester is not None:
            query = query.where(students.c.semester == semester)
        if student_id:
            query = query.where(students.c.student_id.contains(student_id, autoescape=True))

        async with self._engine.begin() as conn:
            result = await conn.execute(query.order_by(students.c.student_id))
            rows = result.mappings().all()
        return [self._row_to_student(row) for row in rows]

    async def count_for_tenant(self, tenant_id: str) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(func.count()).select_from(students).where(students.c.tenant_id == tenant_id)
            )
            return int(result.scalar_one())

    async def add(self, student: Student, *, enforce_limit: bool = False) -> Student:
        """Insert a student record.

        Raises ConflictError when the registration number is taken in the
        tenant or the account already has a record. With ``enforce_limit`` the
        license's ``max_students`` cap is checked under a lock on the license
        row, in the same transaction as the insert.
        """
        try:
            async with self._engine.begin() as conn:
                if enforce_limit:
                    await self._claim_seat(conn, student.tenant_id)
                result = await conn.execute(insert(students).values(**self._student_values(student)))
                student_pk = result.inserted_primary_key[0]
        except IntegrityError as exc:
            log.warning("student_insert_conflict", tenant_id=student.tenant_id)
            raise ConflictError(
                _ALREADY_ENROLLED,
                context={"student_id": student.student_id, "account_id": student.account_id},
            ) from exc

        log.info("student_created", student_pk=student_pk, tenant_id=student.tenant_id)
        return replace(student, id=student_pk)

    @staticmethod
    async def _claim_seat(conn: AsyncConnection, tenant_id: str) -> None:
        caps = await lock_tenant_license(conn, tenant_id)
        if caps is None:
            raise NotFoundError("Institution not found.", context={"tenant_id": tenant_id})

        used = await count_rows(conn, students, tenant_id)
        if not has_capacity(caps["max_students"], used):
            log.warning(
                "student_limit_reached", tenant_id=tenant_id, max_students=caps["max_students"]
            )
            raise UnprocessableError(MSG_STUDENT_LIMIT_REACHED, context={"tenant_id": tenant_id})

    async def update(self, student: Student) -> Student:
        saved = replace(student, updated_at=datetime.now(timezone.utc))
        values = self._student_values(saved)
        values.pop("created_at")
        try:
            async with self._engine.begin() as conn:
                await conn.execute(update(students).where(students.c.id == student.id).values(**values))
        except IntegrityError as exc:
            raise ConflictError(_STUDENT_ID_TAKEN, context={"student_id": student.student_id}) from exc

        log.info("student_updated", student_pk=student.id, tenant_id=student.tenant_id)
        return saved

    async def delete(self, student_pk: int) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(delete(students).where(students.c.id == student_pk))
        log.info("student_deleted", student_pk=student_pk)

    @staticmethod
    def _student_values(student: Student) -> dict[str, Any]:
        return {
            "tenant_id": student.tenant_id,
            "student_id": student.student_id,
            "account_id": student.account_id,
            "career_id": student.career_id,
            "semester": student.semester,
            "created_at": student.created_at,
            "updated_at": student.updated_at,
        }

    @staticmethod
    def _row_to_student(r: Mapping[str, Any]) -> Student:
        return Student(
            id=r["id"],
            tenant_id=r["tenant_id"],
            student_id=r["student_id"],
            account_id=r["account_id"],
            career_id=r["career_id"],
            semester=r["semester"],
            created_at=as_utc(r["created_at"]),
            updated_at=as_utc(r["updated_at"]),
        )
