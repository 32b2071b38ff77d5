"""
Custom exception hierarchy for the application.

Services raise these typed errors; the boundary in ``educore.main`` maps each
one to its ``status_code`` and a ``{success: false, message}`` body.
"""

from typing import Any

from fastapi import status


class EduCoreException(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str | None = None

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def client_message(self) -> str:
        """Message safe to send to the caller."""
        return self.public_message or self.message


class ValidationError(EduCoreException):
    """Raised when required input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCredentials(EduCoreException):
    """Login failure. Deliberately does not say which part was wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Invalid email or password"

    def __init__(self, message: str = "Invalid email or password", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class Unauthorized(EduCoreException):
    """Missing, unparseable or otherwise unusable session token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Invalid or expired session"


class MalformedToken(Unauthorized):
    """Token signature, format or claims are invalid."""


class TokenExpired(Unauthorized):
    """Token is past its expiry."""


class TokenRevoked(Unauthorized):
    """Token id is on the logout denylist."""


class UserInactive(Unauthorized):
    """Token references a user that no longer exists or was deactivated."""


class Forbidden(EduCoreException):
    """Valid session, but insufficient role or wrong tenant scope."""

    status_code = status.HTTP_403_FORBIDDEN


class TenantInactive(EduCoreException):
    """The caller's tenant does not currently permit access."""

    status_code = status.HTTP_403_FORBIDDEN
    public_message = "Tenant is not active"


class NotFoundError(EduCoreException):
    """Raised when a requested resource doesn't exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EduCoreException):
    """Raised when a unique resource (e.g. an email) already exists."""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateTransition(EduCoreException):
    """Raised when a tenant status change is not allowed from its current status."""

    status_code = status.HTTP_409_CONFLICT


class QuotaExceeded(EduCoreException):
    """Raised when admitting students would breach the tenant's seat limit."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StoreUnavailable(EduCoreException):
    """The credential store did not answer within the configured bound."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_message = "Service temporarily unavailable"
