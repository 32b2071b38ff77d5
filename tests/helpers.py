"""
Shared helpers for tests: identities, registration payloads and session tokens.
"""

from datetime import datetime, timedelta, timezone

from educore.core.security import create_access_token
from educore.features.auth.identity import Identity
from educore.models.user import Role, User
from educore.schemas.tenant import AdminInfo, PlanInfo, TenantInfo


def operator_identity(user_id: str = "sysadmin-1") -> Identity:
    """A sys_admin identity as the validator would build it."""
    now = datetime.now(timezone.utc)
    return Identity(
        user_id=user_id,
        tenant_id=None,
        role=Role.SYS_ADMIN,
        issued_at=now,
        expires_at=now + timedelta(hours=1),
    )


def school_identity(tenant_id: str, role: Role = Role.SCHOOL_ADMIN, user_id: str = "user-1") -> Identity:
    now = datetime.now(timezone.utc)
    return Identity(
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        issued_at=now,
        expires_at=now + timedelta(hours=1),
    )


def registration(
    name: str = "Alpha School",
    email: str = "admin@alpha.edu",
    password: str = "secret1",
    plan: str | None = None,
) -> tuple[TenantInfo, AdminInfo, PlanInfo | None]:
    return (
        TenantInfo(name=name),
        AdminInfo(email=email, password=password, full_name="Alpha Admin"),
        PlanInfo(plan=plan) if plan else None,
    )


def token_for(user: User) -> str:
    """Session token with the claims login would issue."""
    role = Role(user.role)
    return create_access_token({
        "sub": user.id,
        "tenant_id": None if role == Role.SYS_ADMIN else user.tenant_id,
        "role": role.value,
    })


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}
