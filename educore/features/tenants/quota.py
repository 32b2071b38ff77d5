"""
Student seat quota.

``can_add_students`` is an advisory read for UIs. The authoritative check is
``admit_users``: a conditional UPDATE on ``tenants.student_count`` that only
succeeds while the new total fits ``max_students``, committed in the same
transaction as the user inserts.
"""

import asyncio
import weakref
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.database import store_call
from educore.core.exceptions import (
    ConflictError,
    NotFoundError,
    QuotaExceeded,
    StoreUnavailable,
    TenantInactive,
    ValidationError,
)
from educore.core.metrics import quota_decisions_total
from educore.features.tenants.state_machine import as_utc
from educore.models.tenant import Tenant, TenantStatus
from educore.models.user import Role, User

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QuotaCheck:
    can_add: bool
    current_count: int
    max_allowed: int
    new_total: int
    remaining: int


def _admissible(now: datetime):
    """Tenants that may take new users: active, or trial before its end date."""
    return or_(
        Tenant.status == TenantStatus.ACTIVE.value,
        and_(
            Tenant.status == TenantStatus.TRIAL.value,
            or_(Tenant.trial_end_date.is_(None), Tenant.trial_end_date > now),
        ),
    )


class QuotaEnforcer:
    """Guards student creation against each tenant's ``max_students``."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, tenant_id: str) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tenant_id] = lock
        return lock

    async def can_add_students(
        self,
        db: AsyncSession,
        tenant_id: str,
        additional_count: int = 1,
    ) -> QuotaCheck:
        """
        Report whether ``additional_count`` more students would fit.

        Advisory only; the answer can be stale by the time a write happens.

        Raises:
            ValidationError: additional_count below 1
            NotFoundError: unknown tenant
            QuotaExceeded: the store did not answer in time
        """
        if additional_count < 1:
            raise ValidationError(
                "additional_count must be at least 1",
                details={"field": "count"},
            )

        try:
            max_allowed = await store_call(
                db.scalar(select(Tenant.max_students).where(Tenant.id == tenant_id)),
                "load_quota",
            )
            if max_allowed is None:
                raise NotFoundError("Tenant not found", details={"tenant_id": tenant_id})

            current = await store_call(
                db.scalar(
                    select(func.count())
                    .select_from(User)
                    .where(User.tenant_id == tenant_id, User.role == Role.STUDENT.value)
                ),
                "count_students",
            )
        except StoreUnavailable as e:
            quota_decisions_total.labels(decision="store_unavailable").inc()
            raise QuotaExceeded("Seat availability could not be verified") from e

        current = current or 0
        new_total = current + additional_count

        return QuotaCheck(
            can_add=new_total <= max_allowed,
            current_count=current,
            max_allowed=max_allowed,
            new_total=new_total,
            remaining=max(max_allowed - current, 0),
        )

    async def admit_users(
        self,
        db: AsyncSession,
        tenant_id: str,
        users: Sequence[User],
        now: datetime | None = None,
    ) -> list[User]:
        """
        Insert ``users`` into ``tenant_id`` atomically.

        Student-role users reserve seats first; the batch either fits
        entirely or nothing is written. Other roles only require the
        tenant to be admissible.

        Raises:
            NotFoundError: unknown tenant
            TenantInactive: tenant is not active or its trial has lapsed
            QuotaExceeded: the students would exceed max_students, or the
                store could not be reached
            ConflictError: an email is already taken
        """
        if not users:
            raise ValidationError("At least one user is required")

        now = now or datetime.now(timezone.utc)
        students = sum(1 for user in users if user.role == Role.STUDENT.value)

        for user in users:
            user.tenant_id = tenant_id

        async with self._lock_for(tenant_id):
            try:
                await self._reserve(db, tenant_id, students, now)

                db.add_all(users)
                await db.flush()
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise ConflictError("One or more emails already exist", details={"field": "email"})
            except StoreUnavailable as e:
                await db.rollback()
                quota_decisions_total.labels(decision="store_unavailable").inc()
                raise QuotaExceeded("Seat availability could not be verified") from e
            except Exception:
                await db.rollback()
                raise

        if students:
            quota_decisions_total.labels(decision="admitted").inc()
        logger.info(
            "users_admitted",
            tenant_id=tenant_id,
            students=students,
            total=len(users),
        )
        return list(users)

    async def _reserve(
        self,
        db: AsyncSession,
        tenant_id: str,
        students: int,
        now: datetime,
    ) -> None:
        """Claim ``students`` seats, or raise the reason it is not possible."""
        conditions = [Tenant.id == tenant_id, _admissible(now)]
        if students:
            conditions.append(Tenant.student_count + students <= Tenant.max_students)

        stmt = (
            update(Tenant)
            .where(*conditions)
            .values(student_count=Tenant.student_count + students)
            .execution_options(synchronize_session=False)
        )
        result = await store_call(db.execute(stmt), "reserve_seats")

        if result.rowcount == 1:
            return

        tenant = await store_call(
            db.get(Tenant, tenant_id, populate_existing=True),
            "diagnose_quota",
        )
        if tenant is None:
            raise NotFoundError("Tenant not found", details={"tenant_id": tenant_id})

        admissible = tenant.status == TenantStatus.ACTIVE.value or (
            tenant.status == TenantStatus.TRIAL.value
            and (tenant.trial_end_date is None or as_utc(tenant.trial_end_date) > now)
        )
        if not admissible:
            raise TenantInactive(
                f"Tenant status '{tenant.status}' does not allow new users",
                details={"status": tenant.status},
            )

        quota_decisions_total.labels(decision="rejected").inc()
        logger.warning(
            "student_quota_exceeded",
            tenant_id=tenant_id,
            requested=students,
            current=tenant.student_count,
            max_allowed=tenant.max_students,
        )
        raise QuotaExceeded(
            f"Student limit reached. Plan allows {tenant.max_students} students",
            details={
                "current_count": tenant.student_count,
                "max_allowed": tenant.max_students,
                "requested": students,
            },
        )


# Singleton instance
quota_enforcer = QuotaEnforcer()
