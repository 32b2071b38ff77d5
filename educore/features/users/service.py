"""
User provisioning inside a tenant.
"""

from collections.abc import Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.exceptions import ConflictError, ValidationError
from educore.core.security import hash_password, normalize_email
from educore.features.auth.guard import ensure_tenant_access
from educore.features.auth.identity import Identity
from educore.features.tenants.quota import quota_enforcer
from educore.models.user import Role, User
from educore.schemas.user import UserCreate

logger = structlog.get_logger(__name__)


class UserService:
    """Creates tenant users. Every insert goes through the quota enforcer."""

    async def create_users(
        self,
        db: AsyncSession,
        identity: Identity,
        payloads: Sequence[UserCreate],
        tenant_id: str | None = None,
    ) -> list[User]:
        """
        Create a batch of users in one tenant.

        School admins always create into their own tenant; a sys_admin has
        to name the target tenant.

        Raises:
            ValidationError: no target tenant, a sys_admin role requested, or
                duplicate emails within the batch
            Forbidden: tenant_id names another tenant
            ConflictError: an email already exists
        """
        target = tenant_id if identity.is_sys_admin else (tenant_id or identity.tenant_id)
        if not target:
            raise ValidationError("tenant_id is required", details={"field": "tenant_id"})
        ensure_tenant_access(identity, target)

        emails = [normalize_email(p.email) for p in payloads]
        if len(set(emails)) != len(emails):
            raise ValidationError("Duplicate emails in request", details={"field": "users"})

        taken = await db.scalars(select(User.email).where(User.email.in_(emails)))
        taken = sorted(taken.all())
        if taken:
            raise ConflictError("Email already exists", details={"emails": taken})

        users = []
        for email, payload in zip(emails, payloads):
            if payload.role == Role.SYS_ADMIN:
                raise ValidationError("sys_admin accounts cannot be created here")
            users.append(
                User(
                    email=email,
                    hashed_password=hash_password(payload.password),
                    full_name=payload.full_name,
                    phone=payload.phone,
                    role=Role(payload.role).value,
                    is_active=True,
                )
            )

        created = await quota_enforcer.admit_users(db, target, users)

        logger.info(
            "users_created",
            tenant_id=target,
            count=len(created),
            created_by=identity.user_id,
        )
        return created


# Singleton instance
user_service = UserService()
