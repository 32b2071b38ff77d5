"""
Role and tenant-scope authorization.

The role model is flat: ``has_role`` is a plain membership test and routes
list every role they admit. The one asymmetry is tenant scoping, which a
sys_admin bypasses because it has no tenant of its own.
"""

from collections.abc import Iterable
from typing import Annotated

import structlog
from fastapi import Depends

from educore.core.exceptions import Forbidden
from educore.features.auth.dependencies import get_current_identity
from educore.features.auth.identity import Identity
from educore.models.user import Role

logger = structlog.get_logger(__name__)

RoleSpec = Role | str | Iterable[Role | str]


def normalize_roles(required: RoleSpec) -> frozenset[Role]:
    """
    Turn a role, a role name or a collection of either into a set of roles.

    Raises:
        ValueError: an unknown role name was given
    """
    if isinstance(required, (Role, str)):
        required = [required]
    return frozenset(Role(role) for role in required)


def has_role(identity: Identity, required: RoleSpec) -> bool:
    """True when the caller's role is one of ``required``. No implied roles."""
    return identity.role in normalize_roles(required)


def ensure_tenant_access(identity: Identity, tenant_id: str) -> None:
    """
    Require the caller to belong to ``tenant_id``.

    Raises:
        Forbidden: caller is scoped to a different tenant
    """
    if identity.is_sys_admin:
        return

    if identity.tenant_id != tenant_id:
        logger.warning(
            "tenant_scope_violation",
            caller_tenant_id=identity.tenant_id,
            target_tenant_id=tenant_id,
        )
        raise Forbidden("Access denied to this tenant")


def require_roles(*roles: Role | str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.put("/tenant/{tenant_id}/approve")
        async def approve(identity: Identity = Depends(require_roles(Role.SYS_ADMIN))):
            ...
    """
    allowed = normalize_roles(roles)

    async def role_checker(
        identity: Annotated[Identity, Depends(get_current_identity)],
    ) -> Identity:
        if identity.role not in allowed:
            logger.warning(
                "role_denied",
                role=identity.role.value,
                allowed=sorted(role.value for role in allowed),
            )
            raise Forbidden("Insufficient permissions")
        return identity

    return role_checker


# Type aliases for cleaner route signatures
SysAdmin = Annotated[Identity, Depends(require_roles(Role.SYS_ADMIN))]
SchoolAdminOrSysAdmin = Annotated[
    Identity, Depends(require_roles(Role.SCHOOL_ADMIN, Role.SYS_ADMIN))
]
