"""Accounts are login identities, each bound to one tenant and one role."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    SECRETARY = "secretary"
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(frozen=True)
class Account:
    """A user account. Frozen: updates go through ``dataclasses.replace``."""

    name: str
    email: str
    password_hash: str
    role: Role
    tenant_id: str
    active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_secretary(self) -> bool:
        return self.role == Role.SECRETARY

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT
