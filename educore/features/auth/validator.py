"""
Session token validation.

Every protected request goes through ``SessionValidator.validate``. The token
only proves who the caller was at login time, so the tenant and user are
re-read from the database on each call; a suspension takes effect on the
next request, not when the token expires.
"""

from datetime import datetime, timezone

import structlog
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from educore.config import settings
from educore.core.cache import CacheUnavailable, cache_manager
from educore.core.database import store_call
from educore.core.exceptions import (
    MalformedToken,
    StoreUnavailable,
    TenantInactive,
    TokenExpired,
    TokenRevoked,
    Unauthorized,
    UserInactive,
)
from educore.core.metrics import session_validations_total
from educore.core.security import ACCESS_TOKEN_TYPE, decode_token
from educore.features.auth.identity import Identity
from educore.features.tenants.state_machine import tenant_permits_access
from educore.models.tenant import Tenant
from educore.models.user import Role, User

logger = structlog.get_logger(__name__)

DENYLIST_NAMESPACE = "denylist"


def _claims_to_identity(payload: dict) -> Identity:
    """Check claim shape and build the identity. Raises MalformedToken."""
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise MalformedToken("Invalid token type")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise MalformedToken("Invalid role claim")

    tenant_id = payload.get("tenant_id")
    if role == Role.SYS_ADMIN and tenant_id is not None:
        raise MalformedToken("sys_admin token carries a tenant")
    if role != Role.SYS_ADMIN and not tenant_id:
        raise MalformedToken("Token is missing its tenant")

    try:
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError):
        raise MalformedToken("Invalid time claims")

    return Identity(
        user_id=str(payload["sub"]),
        tenant_id=tenant_id,
        role=role,
        issued_at=issued_at,
        expires_at=expires_at,
        token_id=payload.get("jti"),
    )


class SessionValidator:
    """Turns a bearer token into a live ``Identity`` or a typed failure."""

    async def validate(
        self,
        db: AsyncSession,
        token: str,
        now: datetime | None = None,
    ) -> Identity:
        """
        Validate ``token`` against its signature, expiry and live state.

        Checks run in order: signature and claims, expiry, revocation,
        tenant status, user status. The first failure wins.

        Raises:
            MalformedToken, TokenExpired, TokenRevoked, UserInactive:
                all subclasses of Unauthorized
            TenantInactive: tenant missing or no longer permits this role
            Unauthorized: the store did not answer in time
        """
        now = now or datetime.now(timezone.utc)

        try:
            identity = await self._validate(db, token, now)
        except StoreUnavailable as e:
            session_validations_total.labels(outcome="store_unavailable").inc()
            logger.error("session_store_unavailable", error=e.message)
            raise Unauthorized("Session could not be verified") from e
        except (Unauthorized, TenantInactive) as e:
            session_validations_total.labels(outcome=type(e).__name__).inc()
            logger.info("session_rejected", reason=type(e).__name__, detail=e.message)
            raise

        session_validations_total.labels(outcome="ok").inc()
        return identity

    async def _validate(self, db: AsyncSession, token: str, now: datetime) -> Identity:
        try:
            # Expiry is checked below against ``now``
            payload = decode_token(token, verify_exp=False)
        except ExpiredSignatureError:
            raise TokenExpired("Token has expired")
        except JWTError:
            raise MalformedToken("Token could not be decoded")

        identity = _claims_to_identity(payload)

        if now >= identity.expires_at:
            raise TokenExpired("Token has expired")

        if settings.token_denylist_enabled and identity.token_id:
            try:
                revoked = await cache_manager.exists(
                    DENYLIST_NAMESPACE, identity.token_id, strict=True
                )
            except CacheUnavailable as e:
                raise StoreUnavailable("Revocation list unavailable") from e
            if revoked:
                raise TokenRevoked("Token has been revoked")

        if not identity.is_sys_admin:
            tenant = await store_call(
                db.get(Tenant, identity.tenant_id, populate_existing=True),
                "load_tenant",
            )
            if tenant is None:
                raise TenantInactive("Tenant no longer exists")
            if not tenant_permits_access(tenant.status, identity.role, tenant.trial_end_date, now):
                raise TenantInactive(
                    f"Tenant status '{tenant.status}' does not permit access",
                    details={"status": tenant.status},
                )

        user = await store_call(
            db.get(User, identity.user_id, populate_existing=True),
            "load_user",
        )
        if user is None or not user.is_active:
            raise UserInactive("User not found or inactive")
        if user.tenant_id != identity.tenant_id or user.role != identity.role.value:
            raise UserInactive("User no longer matches the session")

        return identity


# Singleton instance
session_validator = SessionValidator()
