"""Password hashing with bcrypt.

Every hash gets a fresh salt, so hashing the same password twice yields two
different digests. Verification fails closed on malformed digests.
"""

from __future__ import annotations

import bcrypt

from edutrack.core.constants import DEFAULT_BCRYPT_ROUNDS, MAX_PASSWORD_BYTES, MSG_PASSWORD_TOO_LONG
from edutrack.core.exceptions import PasswordHashingError, PasswordTooLongError
from edutrack.core.logging import get_logger

log = get_logger(__name__)


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Generate a bcrypt hash for a password."""
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise PasswordTooLongError(MSG_PASSWORD_TOO_LONG)

    try:
        salt = bcrypt.gensalt(rounds=rounds)
        hashed = bcrypt.hashpw(encoded, salt)
    except (ValueError, TypeError) as exc:
        log.error("password_hash_failed", error=str(exc))
        raise PasswordHashingError("Failed to hash password") from exc
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash. Malformed hashes never match."""
    if not password_hash:
        return False

    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        log.warning("password_hash_malformed")
        return False
