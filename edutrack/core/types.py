"""Shared record types for tenant-scoped school resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Career:
    """An academic program students enroll in."""

    tenant_id: str
    name: str
    code: str
    description: str = ""
    duration: int = 0  # semesters
    active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Student:
    """A student enrollment, linked to the student's login account."""

    tenant_id: str
    student_id: str  # registration number, unique per tenant
    account_id: int
    career_id: int | None = None
    semester: int = 1
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.semester <= 0:
            msg = f"semester must be positive: {self.semester}"
            raise ValueError(msg)
