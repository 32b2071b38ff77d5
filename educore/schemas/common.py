"""
Common/shared Pydantic schemas.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Base configuration for all schemas
class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,  # Allow population by field name or alias
        str_strip_whitespace=True,  # Strip whitespace from strings
        validate_assignment=True,  # Validate on assignment, not just creation
    )


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope shared by every endpoint.

    Usage:
        ApiResponse[TenantRead](message="Tenant retrieved", data=tenant)
    """

    success: bool = True
    message: str
    data: T | None = None


class PageInfo(BaseModel):
    """Page-number pagination metadata."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0, description="Total number of items")
    pages: int = Field(..., ge=0, description="Total number of pages")


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated payload.

    Usage:
        PaginatedResponse[TenantRead](items=tenants, pagination=PageInfo(...))
    """

    items: list[T]
    pagination: PageInfo


class ErrorDetail(BaseModel):
    """Field-level error detail."""

    field: str | None = None
    message: str


class ErrorResponse(BaseModel):
    """
    Error envelope written by the exception handlers in ``educore.main``.

    ``errors`` is only present for request validation failures.
    """

    success: bool = False
    message: str
    errors: list[ErrorDetail] | None = None
