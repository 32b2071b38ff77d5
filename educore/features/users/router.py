"""
User provisioning endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.database import get_db
from educore.features.auth.guard import SchoolAdminOrSysAdmin
from educore.features.users.service import user_service
from educore.schemas.common import ApiResponse
from educore.schemas.user import UserBatchCreate, UserRead

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=ApiResponse[list[UserRead]],
    status_code=status.HTTP_201_CREATED,
)
async def create_users(
    body: UserBatchCreate,
    identity: SchoolAdminOrSysAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[list[UserRead]]:
    """
    Create users in a tenant.

    Students count against the plan's seat limit; the whole batch is
    rejected with 422 if it would not fit.
    """
    users = await user_service.create_users(db, identity, body.users, tenant_id=body.tenant_id)
    return ApiResponse(
        message=f"{len(users)} user(s) created",
        data=[UserRead.model_validate(user) for user in users],
    )
