"""
Authentication business logic.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.config import settings
from educore.core.cache import CacheUnavailable, cache_manager
from educore.core.exceptions import (
    InvalidCredentials,
    StoreUnavailable,
    TenantInactive,
    ValidationError,
)
from educore.core.metrics import logins_total
from educore.core.security import (
    create_access_token,
    normalize_email,
    pwd_context,
    verify_password,
)
from educore.features.auth.identity import Identity
from educore.features.auth.validator import DENYLIST_NAMESPACE
from educore.features.tenants.state_machine import tenant_permits_access
from educore.models.tenant import Tenant
from educore.models.user import Role, User

logger = structlog.get_logger(__name__)


@dataclass
class LoginResult:
    """A freshly issued session plus the records it was issued for."""

    token: str
    expires_in: int
    user: User
    tenant: Tenant | None


class SessionIssuer:
    """Verifies credentials and issues session tokens."""

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        now: datetime | None = None,
    ) -> LoginResult:
        """
        Authenticate by email and password.

        Unknown email, wrong password and deactivated account all produce the
        same InvalidCredentials so the response does not reveal which one it
        was. A correct password for a tenant that does not permit access
        yields TenantInactive.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        now = now or datetime.now(timezone.utc)
        email = normalize_email(email)

        user = await db.scalar(select(User).where(User.email == email))

        if user is None:
            # Same bcrypt cost as a real check
            pwd_context.dummy_verify()
            self._reject(email, "unknown_email")

        if not verify_password(password, user.hashed_password):
            self._reject(email, "bad_password")

        if not user.is_active:
            self._reject(email, "inactive_user")

        role = Role(user.role)
        tenant = None

        if role != Role.SYS_ADMIN:
            tenant = await db.get(Tenant, user.tenant_id, populate_existing=True)
            if tenant is None or not tenant_permits_access(
                tenant.status, role, tenant.trial_end_date, now
            ):
                logins_total.labels(outcome="tenant_inactive").inc()
                logger.warning(
                    "login_tenant_inactive",
                    user_id=user.id,
                    tenant_id=user.tenant_id,
                    tenant_status=tenant.status if tenant else None,
                )
                raise TenantInactive(
                    "Tenant does not permit access",
                    details={"status": tenant.status if tenant else None},
                )

        token = create_access_token(
            {
                "sub": user.id,
                "tenant_id": user.tenant_id if role != Role.SYS_ADMIN else None,
                "role": role.value,
            },
            now=now,
        )

        user.last_login_at = now
        await db.commit()

        logins_total.labels(outcome="success").inc()
        logger.info("login_succeeded", user_id=user.id, tenant_id=user.tenant_id, role=role.value)

        return LoginResult(
            token=token,
            expires_in=settings.access_token_expire_minutes * 60,
            user=user,
            tenant=tenant,
        )

    def _reject(self, email: str, reason: str) -> None:
        logins_total.labels(outcome="invalid_credentials").inc()
        logger.warning("login_failed", email=email, reason=reason)
        raise InvalidCredentials()

    async def logout(self, identity: Identity, now: datetime | None = None) -> bool:
        """
        End a session.

        Without the denylist the token stays valid until it expires and the
        client is expected to discard it. With the denylist the token id is
        stored until the token's own expiry.

        Returns:
            True if the token was revoked server-side
        """
        if not settings.token_denylist_enabled or not identity.token_id:
            logger.info("logout", user_id=identity.user_id, revoked=False)
            return False

        now = now or datetime.now(timezone.utc)
        ttl = max(int((identity.expires_at - now).total_seconds()), 1)

        try:
            await cache_manager.set(DENYLIST_NAMESPACE, identity.token_id, True, ttl=ttl, strict=True)
        except CacheUnavailable as e:
            raise StoreUnavailable("Could not revoke session") from e

        logger.info("logout", user_id=identity.user_id, revoked=True)
        return True


# Singleton instance
session_issuer = SessionIssuer()
