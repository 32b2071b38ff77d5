"""
Authentication endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.database import get_db
from educore.core.exceptions import UserInactive
from educore.core.rate_limit import rate_limit
from educore.features.auth.dependencies import CurrentIdentity
from educore.features.auth.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    SessionInfo,
)
from educore.features.auth.service import session_issuer
from educore.models.tenant import Tenant
from educore.models.user import User
from educore.schemas.common import ApiResponse
from educore.schemas.tenant import TenantRead
from educore.schemas.user import UserRead

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    dependencies=[Depends(rate_limit("auth"))],
)
async def login(
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[LoginResponse]:
    """
    Login with email and password.

    Returns a bearer token together with the user and, for tenant-scoped
    roles, the tenant.
    """
    result = await session_issuer.login(db, login_data.email, login_data.password)

    return ApiResponse(
        message="Login successful",
        data=LoginResponse(
            token=result.token,
            expires_in=result.expires_in,
            user=UserRead.model_validate(result.user),
            tenant=TenantRead.model_validate(result.tenant) if result.tenant else None,
        ),
    )


@router.get("/me", response_model=ApiResponse[SessionInfo])
async def get_current_session(
    identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[SessionInfo]:
    """
    Re-validate the current token and return the live user and tenant.

    Clients call this on startup instead of trusting a cached identity.
    """
    user = await db.get(User, identity.user_id)
    if user is None:
        raise UserInactive("User not found or inactive")

    tenant = None
    if identity.tenant_id:
        tenant = await db.get(Tenant, identity.tenant_id)

    return ApiResponse(
        message="Session is valid",
        data=SessionInfo(
            user=UserRead.model_validate(user),
            tenant=TenantRead.model_validate(tenant) if tenant else None,
        ),
    )


@router.post("/logout", response_model=ApiResponse[LogoutResponse])
async def logout(identity: CurrentIdentity) -> ApiResponse[LogoutResponse]:
    """
    Logout endpoint.

    Revokes the token when the server-side denylist is enabled; otherwise
    the client discards it.
    """
    revoked = await session_issuer.logout(identity)
    return ApiResponse(message="Successfully logged out", data=LogoutResponse(revoked=revoked))
