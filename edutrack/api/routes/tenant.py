"""Tenant overview for the institution's secretaries."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from edutrack.api.context import RequestIdentity
from edutrack.api.deps import get_provisioning, require_secretary
from edutrack.api.models.schemas import LicenseOut, TenantOut, TenantStatsOut
from edutrack.api.provisioning import ProvisioningService

router = APIRouter(tags=["tenant"])


@router.get("/tenant", response_model=TenantOut)
async def get_tenant(
    identity: RequestIdentity = Depends(require_secretary),
    provisioning: ProvisioningService = Depends(get_provisioning),
) -> TenantOut:
    """The caller's institution with its license status and headline counts."""
    tenant = identity.tenant
    stats = await provisioning.tenant_stats(tenant.tenant_id)
    return TenantOut(
        tenant_id=tenant.tenant_id,
        name=tenant.name,
        logo_url=tenant.logo_url,
        license=LicenseOut.from_license(tenant.license),
        stats=TenantStatsOut(
            account_count=stats.account_count,
            secretary_count=stats.secretary_count,
            teacher_count=stats.teacher_count,
            student_count=stats.student_count,
            career_count=stats.career_count,
        ),
    )
