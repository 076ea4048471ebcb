"""Request identity — the resolved account bound to one request.

Built once by the authorization gate and handed to route functions as an
explicit argument. It is frozen, so nothing downstream can swap the account.
"""

from __future__ import annotations

from dataclasses import dataclass

from edutrack.saas.account import Account, Role
from edutrack.saas.tenant import Tenant


@dataclass(frozen=True)
class RequestIdentity:
    """Authenticated caller: a live account plus its tenant and license."""

    account: Account
    tenant: Tenant

    def __post_init__(self) -> None:
        if self.account.id is None:
            raise ValueError("RequestIdentity requires a persisted account")
        if self.account.tenant_id != self.tenant.tenant_id:
            raise ValueError("Account and tenant do not match")

    @property
    def account_id(self) -> int:
        return self.account.id  # type: ignore[return-value]

    @property
    def tenant_id(self) -> str:
        return self.account.tenant_id

    @property
    def role(self) -> Role:
        return self.account.role

    def has_role(self, *roles: Role) -> bool:
        """The one role predicate the gate and the routes share."""
        return self.account.role in roles
