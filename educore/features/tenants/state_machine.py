"""
Tenant status state machine and the tenant access rule.

Kept free of I/O so the transition table can be tested exhaustively.
"""

from datetime import datetime, timezone
from enum import Enum

from educore.core.exceptions import InvalidStateTransition
from educore.models.tenant import TenantStatus
from educore.models.user import Role


class TenantOperation(str, Enum):
    """Operations that move a tenant's status."""
    APPROVE = "approve"
    REJECT = "reject"
    SUSPEND = "suspend"
    REACTIVATE = "reactivate"
    EXPIRE_TRIAL = "expire_trial"


# operation -> {from_status: to_status}
TRANSITIONS: dict[TenantOperation, dict[TenantStatus, TenantStatus]] = {
    TenantOperation.APPROVE: {
        TenantStatus.PENDING: TenantStatus.ACTIVE,
        TenantStatus.ACTIVE: TenantStatus.ACTIVE,  # no-op success
    },
    TenantOperation.REJECT: {
        TenantStatus.PENDING: TenantStatus.REJECTED,
    },
    TenantOperation.SUSPEND: {
        TenantStatus.ACTIVE: TenantStatus.SUSPENDED,
    },
    TenantOperation.REACTIVATE: {
        TenantStatus.SUSPENDED: TenantStatus.ACTIVE,
    },
    TenantOperation.EXPIRE_TRIAL: {
        TenantStatus.TRIAL: TenantStatus.PENDING,
    },
}


def next_status(current: TenantStatus | str, operation: TenantOperation) -> TenantStatus:
    """
    Resolve the target status of ``operation`` applied to ``current``.

    Raises:
        InvalidStateTransition: the pair is not in the transition table
    """
    current = TenantStatus(current)
    allowed = TRANSITIONS[operation]

    if current not in allowed:
        raise InvalidStateTransition(
            f"Cannot {operation.value} a tenant in status '{current.value}'",
            details={"status": current.value, "operation": operation.value},
        )

    return allowed[current]


def as_utc(value: datetime | None) -> datetime | None:
    """Some backends hand timestamps back naive; they are stored in UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def tenant_permits_access(
    status: TenantStatus | str,
    role: Role | str,
    trial_end_date: datetime | None,
    now: datetime,
) -> bool:
    """
    Whether a user with ``role`` may authenticate into a tenant right now.

    - active: everyone
    - trial: everyone until trial_end_date, then school admins only
    - pending: school admins only, so they can follow their application
    - rejected, suspended: nobody
    """
    status = TenantStatus(status)
    role = Role(role)

    if status == TenantStatus.ACTIVE:
        return True

    if status == TenantStatus.TRIAL:
        trial_end = as_utc(trial_end_date)
        if trial_end is None or now < trial_end:
            return True
        return role == Role.SCHOOL_ADMIN

    if status == TenantStatus.PENDING:
        return role == Role.SCHOOL_ADMIN

    return False
