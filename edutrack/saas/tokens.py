"""Bearer tokens — HS256-signed JWTs carrying account, tenant and role.

Tokens are stateless. A token stays cryptographically valid for its whole
lifetime, so callers must still re-check the account and license on every
request. Revocation happens only by deactivating the account or rotating
the signing secret.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from edutrack.core.constants import TOKEN_ALGORITHM, TOKEN_LIFETIME_HOURS
from edutrack.core.logging import get_logger
from edutrack.saas.account import Account, Role

log = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a bearer token."""

    account_id: int
    tenant_id: str
    role: Role
    issued_at: datetime
    expires_at: datetime


class TokenManager:
    """Minimal JWT implementation (HS256) over a secret injected at construction."""

    _lifetime = timedelta(hours=TOKEN_LIFETIME_HOURS)

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret: bytes = secret.encode()


    def issue(self, account: Account, *, now: datetime | None = None) -> str:
        """Create a signed token for the given account."""
        if account.id is None:
            raise ValueError("Cannot issue a token for an unsaved account")

        issued_at = int((now or datetime.now(timezone.utc)).timestamp())
        payload = {
            "sub": str(account.id),
            "account_id": account.id,
            "tenant_id": account.tenant_id,
            "role": account.role.value,
            "iat": issued_at,
            "exp": issued_at + int(self._lifetime.total_seconds()),
        }

        header = self._b64url_encode(json.dumps({"alg": TOKEN_ALGORITHM, "typ": "JWT"}).encode())
        body = self._b64url_encode(json.dumps(payload).encode())
        signature = self._sign(f"{header}.{body}")

        return f"{header}.{body}.{signature}"

    def verify(self, token: str, *, now: datetime | None = None) -> TokenClaims | None:
        """Verify a token and return its claims, or None if it must not be trusted."""
        parts = token.split(".")
        if len(parts) != 3:
            return None

        header_b64, body_b64, sig = parts
        expected_sig = self._sign(f"{header_b64}.{body_b64}")

        if not hmac.compare_digest(sig.encode(), expected_sig.encode()):
            log.warning("jwt_invalid_signature")
            return None

        try:
            header = json.loads(self._b64url_decode(header_b64))
            payload = json.loads(self._b64url_decode(body_b64))
        except ValueError:
            log.warning("jwt_decode_error")
            return None

        if not isinstance(header, dict) or header.get("alg") != TOKEN_ALGORITHM:
            log.warning("jwt_unexpected_algorithm")
            return None

        try:
            claims = TokenClaims(
                account_id=int(payload["account_id"]),
                tenant_id=str(payload["tenant_id"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            log.warning("jwt_claims_invalid")
            return None

        if (now or datetime.now(timezone.utc)) >= claims.expires_at:
            log.debug("jwt_expired", account_id=claims.account_id)
            return None

        return claims

    def _sign(self, message: str) -> str:
        sig_bytes = hmac.new(self._secret, message.encode(), hashlib.sha256).digest()
        return self._b64url_encode(sig_bytes)

    @staticmethod
    def _b64url_encode(data: bytes) -> str:
        return base64.urlsafe_b64encode(data).rstrip(b"=").decode()

    @staticmethod
    def _b64url_decode(s: str) -> bytes:
        padding = 4 - len(s) % 4
        if padding != 4:
            s += "=" * padding
        return base64.urlsafe_b64decode(s)
