"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from authz.api.v1.authz import router as authz_router
from authz.api.v1.employees import router as employees_router
from authz.api.v1.roles import router as roles_router
from authz.api.v1.session import router as session_router


router = APIRouter()
router.include_router(session_router, prefix="/session", tags=["session"])
router.include_router(authz_router, prefix="/authz", tags=["authz"])
router.include_router(roles_router, prefix="/roles", tags=["roles"])
router.include_router(employees_router, prefix="/employees", tags=["employees"])
