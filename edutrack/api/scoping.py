"""Tenant-scoped access rules shared by every resource route.

Lists always filter by the caller's tenant. Single-record operations load
the row without a tenant filter and then compare: a missing row is 404, a
row that belongs to another tenant is 403.
"""

from __future__ import annotations

from typing import TypeVar

from edutrack.api.context import RequestIdentity
from edutrack.core.constants import MSG_FORBIDDEN, MSG_NOT_FOUND
from edutrack.core.exceptions import ForbiddenError, NotFoundError
from edutrack.core.logging import get_logger
from edutrack.saas.account import Role

log = get_logger(__name__)

T = TypeVar("T")


def require_found(record: T | None, resource: str, record_id: int) -> T:
    if record is None:
        raise NotFoundError(MSG_NOT_FOUND, context={"resource": resource, "id": record_id})
    return record


def ensure_same_tenant(identity: RequestIdentity, tenant_id: str, resource: str) -> None:
    if tenant_id != identity.tenant_id:
        log.warning(
            "cross_tenant_access_denied",
            resource=resource,
            caller_tenant=identity.tenant_id,
            account_id=identity.account_id,
        )
        raise ForbiddenError(MSG_FORBIDDEN)


def ensure_subject(identity: RequestIdentity, subject_account_id: int, resource: str) -> None:
    """Students may only address records about themselves."""
    if identity.has_role(Role.STUDENT) and subject_account_id != identity.account_id:
        log.warning("subject_access_denied", resource=resource, account_id=identity.account_id)
        raise ForbiddenError(MSG_FORBIDDEN)


def load_scoped(record: T | None, identity: RequestIdentity, resource: str, record_id: int) -> T:
    """Return ``record`` if it exists and belongs to the caller's tenant."""
    found = require_found(record, resource, record_id)
    ensure_same_tenant(identity, found.tenant_id, resource)  # type: ignore[attr-defined]
    return found
