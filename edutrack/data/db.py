"""Relational storage: schema definitions and the async engine."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from config.settings import get_settings
from edutrack.core.logging import get_logger

log = get_logger(__name__)

metadata = MetaData()

# ── Tables ───────────────────────────────────────────────────────

licenses = Table(
    "licenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("key", String(19), nullable=False, unique=True),
    Column("license_type", String(16), nullable=False, default="trial"),
    Column("expiry_at", DateTime(timezone=True), nullable=False),
    Column("max_users", Integer, nullable=False, default=5),
    Column("max_students", Integer, nullable=False, default=50),
    Column("max_courses", Integer, nullable=False, default=10),
    Column("active", Boolean, nullable=False, default=True),
    Column("notes", Text, nullable=False, default=""),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

tenants = Table(
    "tenants",
    metadata,
    Column("tenant_id", String(8), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("logo_url", String(500), nullable=False, default=""),
    Column("license_id", Integer, ForeignKey("licenses.id"), nullable=False, unique=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("deleted_at", DateTime(timezone=True), nullable=True, index=True),
)

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", String(100), nullable=False),
    Column("role", String(16), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("tenant_id", String(8), ForeignKey("tenants.tenant_id"), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

careers = Table(
    "careers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", String(8), ForeignKey("tenants.tenant_id"), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("code", String(50), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("duration", Integer, nullable=False, default=0),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tenant_id", "code", name="uq_career_tenant_code"),
)

students = Table(
    "students",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", String(8), ForeignKey("tenants.tenant_id"), nullable=False, index=True),
    Column("student_id", String(50), nullable=False),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False, unique=True),
    Column("career_id", Integer, ForeignKey("careers.id"), nullable=True),
    Column("semester", Integer, nullable=False, default=1),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tenant_id", "student_id", name="uq_student_tenant_code"),
)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from drivers that drop tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


async def lock_tenant_license(conn: AsyncConnection, tenant_id: str) -> dict[str, int] | None:
    """Lock the tenant's license row for the rest of the transaction.

    Returns the seat caps, or None when the tenant does not exist. The lock
    is taken with a no-op UPDATE, which holds a row lock on PostgreSQL and
    the write lock on SQLite, so concurrent seat checks run one at a time.
    """
    license_id = (
        select(tenants.c.license_id).where(tenants.c.tenant_id == tenant_id).scalar_subquery()
    )
    await conn.execute(
        update(licenses)
        .where(licenses.c.id == license_id)
        .values(max_users=licenses.c.max_users)
    )
    result = await conn.execute(
        select(licenses.c.max_users, licenses.c.max_students, licenses.c.max_courses).where(
            licenses.c.id == license_id
        )
    )
    row = result.mappings().first()
    return dict(row) if row is not None else None


async def count_rows(conn: AsyncConnection, table: Table, tenant_id: str) -> int:
    result = await conn.execute(
        select(func.count()).select_from(table).where(table.c.tenant_id == tenant_id)
    )
    return int(result.scalar_one())


# ── Engine ───────────────────────────────────────────────────────

_engine: AsyncEngine | None = None


async def get_engine() -> AsyncEngine:
    """Get or create the async database engine (singleton)."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        settings = get_settings()
        db_url = settings.database_url.get_secret_value()
        pool_args = {} if db_url.startswith("sqlite") else {"pool_size": 10, "max_overflow": 20}
        _engine = create_async_engine(db_url, echo=settings.database_echo, **pool_args)
        log.info("database_engine_created", host=db_url.split("@")[-1].split("?")[0])
    return _engine


async def init_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or await get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    log.info("schema_initialized", tables=sorted(metadata.tables))


async def close_engine() -> None:
    """Dispose of the engine connection pool."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        log.info("database_engine_closed")
