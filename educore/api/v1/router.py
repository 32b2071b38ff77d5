"""
API v1 router aggregator.

Every feature router is mounted here under /api/v1.
"""

from fastapi import APIRouter

from educore.features.auth.router import router as auth_router
from educore.features.tenants.router import router as tenants_router
from educore.features.users.router import router as users_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

v1_router.include_router(auth_router)
v1_router.include_router(tenants_router)
v1_router.include_router(users_router)
