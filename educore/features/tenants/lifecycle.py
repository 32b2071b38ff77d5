"""
Tenant lifecycle: registration, status transitions and billing updates.

This module is the only writer of ``Tenant.status``. Transitions are applied
with a compare-and-swap UPDATE so two operators acting on the same tenant
cannot both win.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from educore.config import settings
from educore.core.exceptions import (
    ConflictError,
    Forbidden,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from educore.core.metrics import tenant_registrations_total, tenant_transitions_total
from educore.core.query_helpers import QueryBuilder
from educore.core.security import hash_password, normalize_email
from educore.features.auth.identity import Identity
from educore.features.tenants.state_machine import TenantOperation, next_status
from educore.models.tenant import Plan, SubscriptionStatus, Tenant, TenantStatus
from educore.models.user import Role, User
from educore.schemas.tenant import AdminInfo, PlanInfo, SubscriptionUpdate, TenantInfo

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantLifecycleManager:
    """Owns tenant creation and every change to a tenant's status."""

    async def register_tenant(
        self,
        db: AsyncSession,
        tenant_info: TenantInfo,
        admin_info: AdminInfo,
        plan_info: PlanInfo | None = None,
        now: datetime | None = None,
    ) -> Tenant:
        """
        Create a tenant and its school admin in one transaction.

        Raises:
            ConflictError: the admin email is already registered; nothing
                is persisted
        """
        now = now or _utcnow()
        plan_info = plan_info or PlanInfo()
        admin_email = normalize_email(admin_info.email)

        existing = await db.scalar(select(User.id).where(User.email == admin_email))
        if existing:
            raise ConflictError("Email already exists", details={"field": "email"})

        entry_status = TenantStatus(settings.registration_entry_status)

        tenant = Tenant(
            name=tenant_info.name,
            address=tenant_info.address,
            contact_email=tenant_info.contact_email,
            contact_phone=tenant_info.contact_phone,
            status=entry_status.value,
            status_changed_at=now,
            plan=plan_info.plan.value,
            billing_cycle=plan_info.billing_cycle.value,
            subscription_status=SubscriptionStatus.TRIAL.value,
            trial_start_date=now,
            trial_end_date=now + timedelta(days=settings.trial_period_days),
            max_students=plan_limit(plan_info.plan),
            student_count=0,
        )

        try:
            db.add(tenant)
            await db.flush()

            admin = User(
                tenant_id=tenant.id,
                email=admin_email,
                hashed_password=hash_password(admin_info.password),
                full_name=admin_info.full_name,
                phone=admin_info.phone,
                role=Role.SCHOOL_ADMIN.value,
                is_active=True,
            )
            db.add(admin)
            await db.flush()
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("tenant_registration_conflict", admin_email=admin_email)
            raise ConflictError("Email already exists", details={"field": "email"})

        tenant_registrations_total.labels(plan=tenant.plan, status=tenant.status).inc()
        logger.info(
            "tenant_registered",
            tenant_id=tenant.id,
            plan=tenant.plan,
            status=tenant.status,
            admin_user_id=admin.id,
        )

        return tenant

    async def get_tenant(self, db: AsyncSession, tenant_id: str) -> Tenant:
        """
        Load a tenant, always reading current column values.

        Raises:
            NotFoundError: no tenant with this id
        """
        tenant = await db.get(Tenant, tenant_id, populate_existing=True)
        if tenant is None:
            raise NotFoundError("Tenant not found", details={"tenant_id": tenant_id})
        return tenant

    async def approve(self, db: AsyncSession, tenant_id: str, actor: Identity) -> Tenant:
        """pending -> active. Approving an active tenant succeeds without change."""
        return await self._transition(db, tenant_id, TenantOperation.APPROVE, actor)

    async def reject(
        self,
        db: AsyncSession,
        tenant_id: str,
        actor: Identity,
        reason: str,
    ) -> Tenant:
        """pending -> rejected. A reason is mandatory."""
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required", details={"field": "reason"})
        return await self._transition(
            db, tenant_id, TenantOperation.REJECT, actor, reason=reason.strip()
        )

    async def suspend(
        self,
        db: AsyncSession,
        tenant_id: str,
        actor: Identity,
        reason: str | None = None,
    ) -> Tenant:
        """active -> suspended."""
        return await self._transition(
            db, tenant_id, TenantOperation.SUSPEND, actor, reason=reason
        )

    async def reactivate(self, db: AsyncSession, tenant_id: str, actor: Identity) -> Tenant:
        """suspended -> active."""
        return await self._transition(db, tenant_id, TenantOperation.REACTIVATE, actor)

    async def expire_trial(
        self,
        db: AsyncSession,
        tenant_id: str,
        now: datetime | None = None,
    ) -> Tenant:
        """trial -> pending, run by the billing side when a trial lapses."""
        return await self._transition(
            db, tenant_id, TenantOperation.EXPIRE_TRIAL, actor=None, now=now
        )

    async def expire_trials(self, db: AsyncSession, now: datetime | None = None) -> list[str]:
        """
        Move every trial tenant whose trial has ended back to pending.

        Tenants that changed status in the meantime are skipped.

        Returns:
            Ids of the tenants that were expired
        """
        now = now or _utcnow()

        result = await db.execute(
            select(Tenant.id).where(
                Tenant.status == TenantStatus.TRIAL.value,
                Tenant.trial_end_date <= now,
            )
        )
        candidates = list(result.scalars().all())

        expired = []
        for tenant_id in candidates:
            try:
                await self.expire_trial(db, tenant_id, now=now)
            except (InvalidStateTransition, NotFoundError) as e:
                logger.info("trial_expiry_skipped", tenant_id=tenant_id, reason=e.message)
                continue
            expired.append(tenant_id)

        logger.info("trial_sweep_completed", candidates=len(candidates), expired=len(expired))
        return expired

    async def _transition(
        self,
        db: AsyncSession,
        tenant_id: str,
        operation: TenantOperation,
        actor: Identity | None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Tenant:
        if operation != TenantOperation.EXPIRE_TRIAL and (actor is None or not actor.is_sys_admin):
            raise Forbidden("Only a system administrator can change tenant status")

        now = now or _utcnow()
        tenant = await self.get_tenant(db, tenant_id)
        current = TenantStatus(tenant.status)

        try:
            target = next_status(current, operation)
        except InvalidStateTransition:
            tenant_transitions_total.labels(operation=operation.value, outcome="invalid").inc()
            logger.warning(
                "tenant_transition_rejected",
                tenant_id=tenant_id,
                operation=operation.value,
                status=current.value,
            )
            raise

        if target == current:
            tenant_transitions_total.labels(operation=operation.value, outcome="noop").inc()
            return tenant

        values = {"status": target.value, "status_changed_at": now}
        if operation == TenantOperation.REJECT:
            values["rejection_reason"] = reason
            values["status_reason"] = reason
        elif operation == TenantOperation.SUSPEND:
            values["status_reason"] = reason
        elif operation == TenantOperation.EXPIRE_TRIAL:
            values["status_reason"] = "Trial period ended"
            values["subscription_status"] = SubscriptionStatus.EXPIRED.value
        else:
            values["status_reason"] = None

        stmt = (
            update(Tenant)
            .where(Tenant.id == tenant_id, Tenant.status == current.value)
            .values(**values)
            .returning(Tenant)
            .execution_options(populate_existing=True)
        )
        updated = (await db.execute(stmt)).scalar_one_or_none()

        if updated is None:
            # Lost the compare-and-swap; report against the status that won
            await db.rollback()
            winner = await self.get_tenant(db, tenant_id)
            tenant_transitions_total.labels(operation=operation.value, outcome="conflict").inc()
            raise InvalidStateTransition(
                f"Tenant status changed concurrently to '{winner.status}'",
                details={"status": winner.status, "operation": operation.value},
            )

        await db.commit()

        tenant_transitions_total.labels(operation=operation.value, outcome="applied").inc()
        logger.info(
            "tenant_status_changed",
            tenant_id=tenant_id,
            operation=operation.value,
            from_status=current.value,
            to_status=target.value,
            reason=reason,
            actor_user_id=actor.user_id if actor else None,
        )

        return updated

    async def update_subscription(
        self,
        db: AsyncSession,
        tenant_id: str,
        event: SubscriptionUpdate,
        actor: Identity | None = None,
    ) -> Tenant:
        """
        Apply a billing event. Touches subscription and payment fields only.
        """
        tenant = await self.get_tenant(db, tenant_id)

        changes = event.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if isinstance(value, Enum):
                value = value.value
            setattr(tenant, field, value)

        await db.commit()

        logger.info(
            "tenant_subscription_updated",
            tenant_id=tenant_id,
            fields=sorted(changes),
            actor_user_id=actor.user_id if actor else None,
        )
        return tenant

    async def list_tenants(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        status: TenantStatus | None = None,
    ) -> tuple[list[Tenant], int]:
        """Newest first, optionally filtered by status and a name/email search."""
        query = QueryBuilder(db, Tenant)

        if status is not None:
            query.filter(Tenant.status == TenantStatus(status).value)

        if search:
            # Search terms match literally
            term = search.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{term}%"
            query.filter(
                or_(
                    func.lower(Tenant.name).like(pattern, escape="\\"),
                    func.lower(Tenant.contact_email).like(pattern, escape="\\"),
                )
            )

        return await query.order_by(Tenant.created_at, "desc").paginate(page, limit).execute()

    async def get_tenant_stats(self, db: AsyncSession, tenant_id: str) -> dict:
        """Usage by role against the plan's student limit."""
        tenant = await self.get_tenant(db, tenant_id)

        result = await db.execute(
            select(User.role, func.count())
            .where(User.tenant_id == tenant_id)
            .group_by(User.role)
        )
        by_role = {role: count for role, count in result.all()}

        students = by_role.get(Role.STUDENT.value, 0)
        max_students = tenant.max_students

        return {
            "tenant": tenant,
            "usage": {
                "students": students,
                "teachers": by_role.get(Role.TEACHER.value, 0),
                "parents": by_role.get(Role.PARENT.value, 0),
                "school_admins": by_role.get(Role.SCHOOL_ADMIN.value, 0),
            },
            "limits": {
                "max_students": max_students,
                "students_used": students,
                "students_remaining": max(max_students - students, 0),
                "usage_percentage": round(students / max_students * 100) if max_students else 0,
            },
        }


def plan_limit(plan: Plan | str) -> int:
    """Student seat limit for ``plan``."""
    return settings.plan_max_students[Plan(plan).value]


# Singleton instance
tenant_lifecycle = TenantLifecycleManager()
