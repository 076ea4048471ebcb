"""Custom exception hierarchy for EduTrack.

Every error carries the HTTP status it maps to and a user-facing message.
The API layer renders them as ``{"message": ...}`` bodies.
"""

from __future__ import annotations

from typing import Any

from edutrack.core.constants import (
    MSG_BAD_REQUEST,
    MSG_CONFLICT,
    MSG_FORBIDDEN,
    MSG_INTERNAL,
    MSG_NOT_FOUND,
    MSG_UNAUTHORIZED,
    MSG_UNPROCESSABLE,
)


class EduTrackError(Exception):
    """Base exception for all EduTrack errors."""

    status_code: int = 500
    default_message: str = MSG_INTERNAL

    def __init__(self, message: str | None = None, context: dict[str, Any] | None = None) -> None:
        self.message: str = message or self.default_message
        super().__init__(self.message)
        self.context: dict[str, Any] = context or {}


# ── Client errors ────────────────────────────────────────────────

class BadRequestError(EduTrackError):
    """Malformed or missing input. The caller must fix it and retry."""

    status_code = 400
    default_message = MSG_BAD_REQUEST


class UnauthorizedError(EduTrackError):
    """Missing, invalid or expired credentials, inactive account or invalid license."""

    status_code = 401
    default_message = MSG_UNAUTHORIZED


class ForbiddenError(EduTrackError):
    """Authenticated, but not entitled to this record or action."""

    status_code = 403
    default_message = MSG_FORBIDDEN


class NotFoundError(EduTrackError):
    """No such record, in any tenant."""

    status_code = 404
    default_message = MSG_NOT_FOUND


class ConflictError(EduTrackError):
    """Uniqueness violation (license key, tenant ID, email, codes)."""

    status_code = 409
    default_message = MSG_CONFLICT


class UnprocessableError(EduTrackError):
    """Well-formed request that breaks a business rule (seat caps, bad references)."""

    status_code = 422
    default_message = MSG_UNPROCESSABLE


# ── Server errors ────────────────────────────────────────────────

class InternalError(EduTrackError):
    """Storage, hashing or signing failure. Detail is never shown to the caller."""

    status_code = 500
    default_message = MSG_INTERNAL


class LicenseKeyGenerationError(InternalError):
    """The secure random source failed while generating a license key."""


class TenantIdGenerationError(InternalError):
    """The secure random source failed while generating a tenant ID."""


class PasswordHashingError(InternalError):
    """bcrypt failed to hash a password."""


class PasswordTooLongError(BadRequestError):
    """Password exceeds the bcrypt input limit."""
