"""
Pydantic schemas for User.
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from educore.models.user import Role
from educore.schemas.common import BaseSchema


class UserBase(BaseSchema):
    """Base user schema."""

    email: EmailStr = Field(..., description="User email address")
    full_name: str | None = Field(None, max_length=255, description="User's full name")
    phone: str | None = Field(None, max_length=20)


class UserCreate(UserBase):
    """A user created by a school admin inside their tenant."""

    password: str = Field(..., min_length=6, max_length=72, description="User password")
    role: Role = Role.STUDENT

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Role) -> Role:
        """Global administrators are provisioned out of band, not through the API."""
        if v == Role.SYS_ADMIN:
            raise ValueError("sys_admin accounts cannot be created through this endpoint")
        return v


class UserBatchCreate(BaseSchema):
    """Body of POST /users."""

    tenant_id: str | None = Field(
        None,
        description="Target tenant; required for sys_admin callers, ignored for school admins",
    )
    users: list[UserCreate] = Field(..., min_length=1, max_length=500)


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: str
    email: str
    full_name: str | None
    phone: str | None
    role: Role
    is_active: bool
    tenant_id: str | None
    last_login_at: datetime | None
    created_at: datetime
