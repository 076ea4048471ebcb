"""Pydantic V2 request/response schemas for the EduTrack API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from edutrack.core.types import Career, Student
from edutrack.saas.account import Account, Role
from edutrack.saas.license import License, LicenseType

# Request fields default to empty values so that presence checks happen in
# the route and produce the specific 400 message, not a generic one.


# ── Auth ──────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class LoginUser(BaseModel):
    id: int
    name: str
    email: str


class LoginResponse(BaseModel):
    token: str
    role: Role
    user: LoginUser


class LicenseLoginRequest(BaseModel):
    license_key: str = ""


class LicenseLoginResponse(BaseModel):
    tenant_id: str
    tenant_name: str
    message: str


class PasswordChange(BaseModel):
    current_password: str = ""
    new_password: str = ""


# ── Accounts ─────────────────────────────────────────────────────

class AccountCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    role: Role | None = None


class AccountUpdate(BaseModel):
    """Partial update. Only secretaries may touch ``active`` and ``role``."""

    name: str | None = None
    email: str | None = None
    password: str | None = None
    active: bool | None = None
    role: Role | None = None


class AccountOut(BaseModel):
    """Account as returned by the API. The password hash never leaves the server."""

    id: int
    name: str
    email: str
    role: Role
    active: bool
    tenant_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> AccountOut:
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            role=account.role,
            active=account.active,
            tenant_id=account.tenant_id,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


# ── Careers ──────────────────────────────────────────────────────

class CareerCreate(BaseModel):
    name: str = ""
    code: str = ""
    description: str = ""
    duration: int = Field(default=0, ge=0)
    active: bool = True


class CareerUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    description: str | None = None
    duration: int | None = Field(default=None, ge=0)
    active: bool | None = None


class CareerOut(BaseModel):
    id: int
    tenant_id: str
    name: str
    code: str
    description: str = ""
    duration: int = 0
    active: bool = True

    @classmethod
    def from_career(cls, career: Career) -> CareerOut:
        return cls(
            id=career.id,
            tenant_id=career.tenant_id,
            name=career.name,
            code=career.code,
            description=career.description,
            duration=career.duration,
            active=career.active,
        )


# ── Students ─────────────────────────────────────────────────────

class StudentCreate(BaseModel):
    student_id: str = ""
    account_id: int = 0
    career_id: int | None = None
    semester: int = 1


class StudentUpdate(BaseModel):
    student_id: str | None = None
    career_id: int | None = None
    semester: int | None = None


class StudentOut(BaseModel):
    id: int
    tenant_id: str
    student_id: str
    account_id: int
    career_id: int | None = None
    semester: int

    @classmethod
    def from_student(cls, student: Student) -> StudentOut:
        return cls(
            id=student.id,
            tenant_id=student.tenant_id,
            student_id=student.student_id,
            account_id=student.account_id,
            career_id=student.career_id,
            semester=student.semester,
        )


# ── Tenant ───────────────────────────────────────────────────────

class LicenseOut(BaseModel):
    key: str
    license_type: LicenseType
    expiry_at: datetime
    active: bool
    valid: bool
    expired: bool
    days_remaining: int
    max_users: int
    max_students: int
    max_courses: int

    @classmethod
    def from_license(cls, license: License) -> LicenseOut:
        return cls(
            key=license.key,
            license_type=license.license_type,
            expiry_at=license.expiry_at,
            active=license.active,
            valid=license.is_valid(),
            expired=license.is_expired(),
            days_remaining=license.days_until_expiry(),
            **license.limits,
        )


class TenantStatsOut(BaseModel):
    account_count: int = 0
    secretary_count: int = 0
    teacher_count: int = 0
    student_count: int = 0
    career_count: int = 0


class TenantOut(BaseModel):
    tenant_id: str
    name: str
    logo_url: str = ""
    license: LicenseOut
    stats: TenantStatsOut


# ── Generic ───────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "dev"


class ErrorResponse(BaseModel):
    message: str
