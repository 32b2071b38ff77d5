"""
Authentication-specific schemas.
"""

from pydantic import EmailStr, Field

from educore.schemas.common import BaseSchema
from educore.schemas.tenant import TenantRead
from educore.schemas.user import UserRead


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")


class LoginResponse(BaseSchema):
    """Issued session plus the records it belongs to."""

    token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserRead
    tenant: TenantRead | None = None


class SessionInfo(BaseSchema):
    """Response of GET /auth/me."""

    user: UserRead
    tenant: TenantRead | None = None


class LogoutResponse(BaseSchema):
    revoked: bool = Field(..., description="Whether the token was revoked server-side")
