"""
Tenant model for multi-tenancy.

Each tenant is one school sharing the platform. It is the unit of billing
and of the student-seat quota.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from educore.models.base import BaseModel


class TenantStatus(str, Enum):
    """Admission status, moved only by the lifecycle manager."""
    TRIAL = "trial"            # Self-service signup inside the grace period
    PENDING = "pending"        # Waiting for operator approval
    ACTIVE = "active"
    REJECTED = "rejected"
    SUSPENDED = "suspended"    # E.g. non-payment


class SubscriptionStatus(str, Enum):
    """Billing state, reported by the payment collaborator."""
    TRIAL = "trial"
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    PENDING = "pending"


class Plan(str, Enum):
    """Subscription plan; determines max_students."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Tenant(BaseModel):
    """
    Tenant (school) model.

    Provides:
    - Data isolation between schools
    - Admission status state machine
    - Subscription/plan management
    - Student-seat quota
    """

    __tablename__ = "tenants"

    # Basic info
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="School name"
    )

    address: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    contact_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="School contact email"
    )

    contact_phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    # Admission
    status: Mapped[TenantStatus] = mapped_column(
        String(50),
        nullable=False,
        default=TenantStatus.PENDING,
        index=True,
        comment="Admission status"
    )

    status_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Reason given with the last suspension or rejection"
    )

    rejection_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    status_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Subscription and plan
    plan: Mapped[Plan] = mapped_column(
        String(50),
        nullable=False,
        default=Plan.SMALL,
    )

    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        String(50),
        nullable=False,
        default=SubscriptionStatus.TRIAL,
    )

    billing_cycle: Mapped[BillingCycle] = mapped_column(
        String(50),
        nullable=False,
        default=BillingCycle.MONTHLY,
    )

    subscription_start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    subscription_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Payment information (written by the billing collaborator only)
    last_payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_payment_amount: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    payment_method: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    # Trial information
    trial_start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    trial_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    # Resource limits (for quota enforcement)
    max_students: Mapped[int] = mapped_column(
        Integer,
        default=300,
        nullable=False,
        comment="Maximum student users allowed (derived from plan)"
    )

    student_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Admitted students; incremented by the conditional admission write"
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="tenant",
    )

    __table_args__ = (
        Index("idx_tenant_status_trial_end", "status", "trial_end_date"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name}, status={self.status})>"
