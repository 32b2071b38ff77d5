"""
Database models package.
"""

from educore.core.database import Base
from educore.models.base import BaseModel
from educore.models.tenant import (
    BillingCycle,
    Plan,
    SubscriptionStatus,
    Tenant,
    TenantStatus,
)
from educore.models.user import Role, User

__all__ = [
    "Base",
    "BaseModel",
    "BillingCycle",
    "Plan",
    "Role",
    "SubscriptionStatus",
    "Tenant",
    "TenantStatus",
    "User",
]
