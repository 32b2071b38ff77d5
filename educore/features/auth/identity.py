"""
Authenticated caller identity.
"""

from dataclasses import dataclass
from datetime import datetime

from educore.models.user import Role


@dataclass(frozen=True)
class Identity:
    """
    The caller as established by a validated session token.

    Handlers receive this explicitly and pass it down to services. Only
    its ids and role are copied into the logging context.
    """

    user_id: str
    tenant_id: str | None
    role: Role
    issued_at: datetime
    expires_at: datetime
    token_id: str | None = None

    @property
    def is_sys_admin(self) -> bool:
        return self.role == Role.SYS_ADMIN
