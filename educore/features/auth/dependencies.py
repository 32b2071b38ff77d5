"""
Authentication dependencies for dependency injection.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.context import bind_identity
from educore.core.database import get_db
from educore.core.exceptions import Unauthorized
from educore.features.auth.identity import Identity
from educore.features.auth.validator import session_validator

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Identity:
    """
    Resolve the caller from ``Authorization: Bearer <token>``.

    The token is validated live on every request; see SessionValidator.
    """
    if not credentials:
        raise Unauthorized("Authentication required")

    identity = await session_validator.validate(db, credentials.credentials)

    bind_identity(identity)

    return identity


# Type alias for cleaner route signatures
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
