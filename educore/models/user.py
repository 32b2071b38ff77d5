"""
User model for authentication and authorization.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from educore.models.base import BaseModel


class Role(str, Enum):
    """
    Flat role set.

    There is no hierarchy between roles: a route that admits teachers does
    not admit school admins unless it lists both.
    """
    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"
    SCHOOL_ADMIN = "school_admin"
    SYS_ADMIN = "sys_admin"  # Tenant-less, global scope


class User(BaseModel):
    """User account model."""

    __tablename__ = "users"

    # Authentication
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address (unique, lower-cased)"
    )

    hashed_password: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Bcrypt hashed password"
    )

    # Profile
    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="User's full name"
    )

    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    role: Mapped[Role] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Flat role"
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Account active status"
    )

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Multi-tenancy (NULL only for sys_admin)
    tenant_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tenants.id"),
        nullable=True,
        index=True,
        comment="Associated tenant ID"
    )

    # Relationships
    tenant: Mapped["Tenant"] = relationship(
        "Tenant",
        back_populates="users",
        lazy="selectin"
    )

    __table_args__ = (
        Index("idx_user_tenant_role", "tenant_id", "role"),
    )

    @property
    def is_sys_admin(self) -> bool:
        return self.role == Role.SYS_ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
