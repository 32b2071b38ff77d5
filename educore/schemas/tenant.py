"""
Pydantic schemas for Tenant.
"""

from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator

from educore.models.tenant import (
    BillingCycle,
    Plan,
    SubscriptionStatus,
    TenantStatus,
)
from educore.schemas.common import BaseSchema


class TenantInfo(BaseSchema):
    """School details supplied at registration."""

    name: str = Field(..., min_length=1, max_length=255, description="School name")
    address: str | None = Field(None, max_length=1000)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=20)


class AdminInfo(BaseSchema):
    """The school administrator account created together with the tenant."""

    email: EmailStr = Field(..., description="Admin login email")
    password: str = Field(..., min_length=6, max_length=72, description="Admin password")
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20)


class PlanInfo(BaseSchema):
    """Plan selection; both fields fall back to the defaults when omitted."""

    plan: Plan = Plan.SMALL
    billing_cycle: BillingCycle = BillingCycle.MONTHLY


class TenantRegisterRequest(BaseSchema):
    """Body of POST /tenant/register."""

    tenant_info: TenantInfo = Field(..., alias="tenantInfo")
    admin_info: AdminInfo = Field(..., alias="adminInfo")
    plan_info: PlanInfo | None = Field(None, alias="planInfo")


class TenantRegistrationResult(BaseSchema):
    """What registration returns. Never includes credentials."""

    tenant_id: str
    name: str
    plan: Plan
    status: TenantStatus
    subscription_status: SubscriptionStatus
    trial_end_date: datetime | None


class TenantRead(BaseSchema):
    """Schema for reading tenant data."""

    id: str
    name: str
    address: str | None
    contact_email: str | None
    contact_phone: str | None
    status: TenantStatus
    status_reason: str | None
    rejection_reason: str | None
    status_changed_at: datetime | None
    plan: Plan
    subscription_status: SubscriptionStatus
    billing_cycle: BillingCycle
    max_students: int
    trial_start_date: datetime | None
    trial_end_date: datetime | None
    subscription_start_date: datetime | None
    subscription_end_date: datetime | None
    created_at: datetime
    updated_at: datetime


class RejectRequest(BaseSchema):
    reason: str = Field(..., min_length=1, max_length=2000)


class SuspendRequest(BaseSchema):
    reason: str | None = Field(None, max_length=2000)


class SubscriptionUpdate(BaseSchema):
    """
    Billing event reported by the payment collaborator.

    Only subscription and payment fields; status and max_students are
    rejected as unknown fields.
    """

    model_config = ConfigDict(extra="forbid")

    subscription_status: SubscriptionStatus | None = None
    billing_cycle: BillingCycle | None = None
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None
    last_payment_date: datetime | None = None
    last_payment_amount: float | None = Field(None, ge=0)
    payment_method: str | None = Field(None, max_length=50)

    @field_validator("subscription_status", "billing_cycle")
    @classmethod
    def reject_null(cls, v):
        """These columns always hold a value; omit the field to leave it unchanged."""
        if v is None:
            raise ValueError("must not be null")
        return v


class QuotaCheckRead(BaseSchema):
    """Result of the advisory seat check."""

    can_add: bool
    current_count: int
    max_allowed: int
    new_total: int
    remaining: int


class TenantUsage(BaseSchema):
    students: int = 0
    teachers: int = 0
    parents: int = 0
    school_admins: int = 0


class TenantLimits(BaseSchema):
    max_students: int
    students_used: int
    students_remaining: int
    usage_percentage: int


class TenantStats(BaseSchema):
    """Usage versus quota for one tenant."""

    tenant: TenantRead
    usage: TenantUsage
    limits: TenantLimits
