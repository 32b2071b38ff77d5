"""
Pydantic schemas package.
"""

from educore.schemas.common import (
    ApiResponse,
    BaseSchema,
    ErrorDetail,
    ErrorResponse,
    PageInfo,
    PaginatedResponse,
)
from educore.schemas.tenant import (
    AdminInfo,
    PlanInfo,
    QuotaCheckRead,
    RejectRequest,
    SubscriptionUpdate,
    SuspendRequest,
    TenantInfo,
    TenantRead,
    TenantRegisterRequest,
    TenantRegistrationResult,
    TenantStats,
)
from educore.schemas.user import UserBatchCreate, UserCreate, UserRead

__all__ = [
    # Common
    "ApiResponse",
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "PageInfo",
    "PaginatedResponse",
    # Tenant
    "AdminInfo",
    "PlanInfo",
    "QuotaCheckRead",
    "RejectRequest",
    "SubscriptionUpdate",
    "SuspendRequest",
    "TenantInfo",
    "TenantRead",
    "TenantRegisterRequest",
    "TenantRegistrationResult",
    "TenantStats",
    # User
    "UserBatchCreate",
    "UserCreate",
    "UserRead",
]
