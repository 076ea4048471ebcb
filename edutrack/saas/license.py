"""Commercial licenses — the time-boxed entitlement that gates a tenant's access.

A license is valid while it is active and its expiry lies in the future.
Expired and inactive are reported separately so support can tell the
customer which one applies.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from edutrack.core.constants import (
    DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    LICENSE_KEY_BYTES,
    LICENSE_KEY_GROUP_SIZE,
    UNLIMITED,
)
from edutrack.core.exceptions import LicenseKeyGenerationError
from edutrack.core.logging import get_logger

log = get_logger(__name__)


class LicenseType(str, Enum):
    TRIAL = "trial"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class LicenseFailure(str, Enum):
    """Why a license does not grant access."""

    EXPIRED = "expired"
    INACTIVE = "inactive"


LICENSE_LIMITS: dict[LicenseType, dict[str, int]] = {
    LicenseType.TRIAL: {
        "max_users": 3,
        "max_students": 25,
        "max_courses": 5,
    },
    LicenseType.BASIC: {
        "max_users": 10,
        "max_students": 100,
        "max_courses": 20,
    },
    LicenseType.PRO: {
        "max_users": 50,
        "max_students": 500,
        "max_courses": 100,
    },
    LicenseType.ENTERPRISE: {
        "max_users": UNLIMITED,
        "max_students": UNLIMITED,
        "max_courses": UNLIMITED,
    },
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_to_duration(days: int) -> timedelta:
    return timedelta(days=days)


def months_to_duration(months: int) -> timedelta:
    """Approximate months as 30 days each."""
    return timedelta(days=months * DAYS_PER_MONTH)


def years_to_duration(years: int) -> timedelta:
    return timedelta(days=years * DAYS_PER_YEAR)


def generate_license_key() -> str:
    """Generate a new license key: ``XXXX-XXXX-XXXX-XXXX`` in lowercase hex.

    Raises LicenseKeyGenerationError if the secure random source fails.
    The failure is not retried.
    """
    try:
        raw = secrets.token_hex(LICENSE_KEY_BYTES)
    except (OSError, NotImplementedError) as exc:
        log.error("license_key_generation_failed", error=str(exc))
        raise LicenseKeyGenerationError("Failed to generate license key") from exc

    step = LICENSE_KEY_GROUP_SIZE
    return "-".join(raw[i : i + step] for i in range(0, len(raw), step))


def has_capacity(limit: int, used: int) -> bool:
    """True if one more item fits under ``limit`` (-1 means unlimited)."""
    return limit == UNLIMITED or used < limit


@dataclass
class License:
    """A software license owned by exactly one tenant."""

    key: str
    license_type: LicenseType
    expiry_at: datetime
    max_users: int = 5
    max_students: int = 50
    max_courses: int = 10
    active: bool = True
    notes: str = ""
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        license_type: LicenseType,
        duration: timedelta,
        *,
        now: datetime | None = None,
    ) -> License:
        """Issue a new active license with the seat caps of its type."""
        now = now or _utcnow()
        return cls(
            key=generate_license_key(),
            license_type=license_type,
            expiry_at=now + duration,
            active=True,
            created_at=now,
            updated_at=now,
            **LICENSE_LIMITS[license_type],
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utcnow()) >= self.expiry_at

    def is_valid(self, now: datetime | None = None) -> bool:
        return self.active and not self.is_expired(now)

    def failure_reason(self, now: datetime | None = None) -> LicenseFailure | None:
        """Return why the license denies access, or None when it is valid."""
        if self.is_expired(now):
            return LicenseFailure.EXPIRED
        if not self.active:
            return LicenseFailure.INACTIVE
        return None

    def regenerate(self, extension: timedelta, *, now: datetime | None = None) -> None:
        """Issue a new key, re-activate, and optionally extend the expiry.

        An early renewal extends from the stored expiry so remaining time is
        kept. A lapsed license extends from now so the gap is not credited.
        """
        now = now or _utcnow()
        self.key = generate_license_key()
        self.active = True

        if extension > timedelta(0):
            base = self.expiry_at if self.expiry_at > now else now
            self.expiry_at = base + extension

        self.updated_at = now
        log.info(
            "license_regenerated",
            license_id=self.id,
            license_type=self.license_type.value,
            expiry_at=self.expiry_at.isoformat(),
        )

    def days_until_expiry(self, now: datetime | None = None) -> int:
        """Whole days left before expiry. Returns 0 if already expired."""
        now = now or _utcnow()
        if self.is_expired(now):
            return 0
        return (self.expiry_at - now).days

    @property
    def limits(self) -> dict[str, int]:
        return {
            "max_users": self.max_users,
            "max_students": self.max_students,
            "max_courses": self.max_courses,
        }
