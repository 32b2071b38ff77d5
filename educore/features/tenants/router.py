"""
Tenant management endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.database import get_db
from educore.core.query_helpers import page_count
from educore.core.rate_limit import rate_limit
from educore.features.auth.dependencies import CurrentIdentity
from educore.features.auth.guard import SysAdmin, ensure_tenant_access
from educore.features.tenants.lifecycle import tenant_lifecycle
from educore.features.tenants.quota import quota_enforcer
from educore.models.tenant import TenantStatus
from educore.schemas.common import ApiResponse, PageInfo, PaginatedResponse
from educore.schemas.tenant import (
    QuotaCheckRead,
    RejectRequest,
    SubscriptionUpdate,
    SuspendRequest,
    TenantRead,
    TenantRegisterRequest,
    TenantRegistrationResult,
    TenantStats,
)

router = APIRouter(prefix="/tenant", tags=["Tenants"])


@router.post(
    "/register",
    response_model=ApiResponse[TenantRegistrationResult],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("register"))],
)
async def register_tenant(
    body: TenantRegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRegistrationResult]:
    """
    Register a school and its administrator.

    The tenant starts in the configured entry status (pending by default)
    and waits for a system administrator to approve it.
    """
    tenant = await tenant_lifecycle.register_tenant(
        db, body.tenant_info, body.admin_info, body.plan_info
    )

    return ApiResponse(
        message="School registered successfully",
        data=TenantRegistrationResult(
            tenant_id=tenant.id,
            name=tenant.name,
            plan=tenant.plan,
            status=tenant.status,
            subscription_status=tenant.subscription_status,
            trial_end_date=tenant.trial_end_date,
        ),
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[TenantRead]])
async def list_tenants(
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=255),
    status_filter: TenantStatus | None = Query(None, alias="status"),
) -> ApiResponse[PaginatedResponse[TenantRead]]:
    """List tenants, newest first (sys_admin only)."""
    tenants, total = await tenant_lifecycle.list_tenants(
        db, page=page, limit=limit, search=search, status=status_filter
    )

    return ApiResponse(
        message="Tenants retrieved",
        data=PaginatedResponse[TenantRead](
            items=[TenantRead.model_validate(t) for t in tenants],
            pagination=PageInfo(page=page, limit=limit, total=total, pages=page_count(total, limit)),
        ),
    )


@router.get("/{tenant_id}", response_model=ApiResponse[TenantRead])
async def get_tenant(
    tenant_id: str,
    identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRead]:
    """
    Get a tenant by ID.

    - sys_admin: any tenant
    - everyone else: only their own tenant
    """
    ensure_tenant_access(identity, tenant_id)
    tenant = await tenant_lifecycle.get_tenant(db, tenant_id)
    return ApiResponse(message="Tenant retrieved", data=TenantRead.model_validate(tenant))


@router.get("/{tenant_id}/stats", response_model=ApiResponse[TenantStats])
async def get_tenant_stats(
    tenant_id: str,
    identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantStats]:
    """Usage by role versus the plan's limits."""
    ensure_tenant_access(identity, tenant_id)
    stats = await tenant_lifecycle.get_tenant_stats(db, tenant_id)
    return ApiResponse(message="Tenant statistics retrieved", data=TenantStats.model_validate(stats))


@router.get("/{tenant_id}/check-limit", response_model=ApiResponse[QuotaCheckRead])
async def check_student_limit(
    tenant_id: str,
    identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
    count: int = Query(1, description="Number of students to add"),
) -> ApiResponse[QuotaCheckRead]:
    """Advisory seat check. Creating users re-checks atomically."""
    ensure_tenant_access(identity, tenant_id)
    check = await quota_enforcer.can_add_students(db, tenant_id, count)
    return ApiResponse(message="Quota checked", data=QuotaCheckRead.model_validate(check))


@router.put("/{tenant_id}/approve", response_model=ApiResponse[TenantRead])
async def approve_tenant(
    tenant_id: str,
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRead]:
    tenant = await tenant_lifecycle.approve(db, tenant_id, identity)
    return ApiResponse(message="Tenant approved", data=TenantRead.model_validate(tenant))


@router.put("/{tenant_id}/reject", response_model=ApiResponse[TenantRead])
async def reject_tenant(
    tenant_id: str,
    body: RejectRequest,
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRead]:
    tenant = await tenant_lifecycle.reject(db, tenant_id, identity, body.reason)
    return ApiResponse(message="Tenant rejected", data=TenantRead.model_validate(tenant))


@router.put("/{tenant_id}/suspend", response_model=ApiResponse[TenantRead])
async def suspend_tenant(
    tenant_id: str,
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
    body: SuspendRequest | None = None,
) -> ApiResponse[TenantRead]:
    """Suspend an active tenant. Its users lose access on their next request."""
    reason = body.reason if body else None
    tenant = await tenant_lifecycle.suspend(db, tenant_id, identity, reason)
    return ApiResponse(message="Tenant suspended", data=TenantRead.model_validate(tenant))


@router.put("/{tenant_id}/reactivate", response_model=ApiResponse[TenantRead])
async def reactivate_tenant(
    tenant_id: str,
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRead]:
    tenant = await tenant_lifecycle.reactivate(db, tenant_id, identity)
    return ApiResponse(message="Tenant reactivated", data=TenantRead.model_validate(tenant))


@router.put("/{tenant_id}/subscription", response_model=ApiResponse[TenantRead])
async def update_subscription(
    tenant_id: str,
    body: SubscriptionUpdate,
    identity: SysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TenantRead]:
    """Record a billing event. Status and seat limit are not writable here."""
    tenant = await tenant_lifecycle.update_subscription(db, tenant_id, body, identity)
    return ApiResponse(message="Subscription updated", data=TenantRead.model_validate(tenant))
