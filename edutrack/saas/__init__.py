"""SaaS multi-tenant layer — licenses, tenants, accounts, passwords and tokens."""

from edutrack.saas.account import Account, Role
from edutrack.saas.license import LICENSE_LIMITS, License, LicenseFailure, LicenseType
from edutrack.saas.passwords import hash_password, verify_password
from edutrack.saas.tenant import Tenant
from edutrack.saas.tokens import TokenClaims, TokenManager

__all__ = [
    "Account",
    "Role",
    "License",
    "LicenseFailure",
    "LicenseType",
    "LICENSE_LIMITS",
    "Tenant",
    "TokenClaims",
    "TokenManager",
    "hash_password",
    "verify_password",
]
