"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from sharrr.server.api import health, objects, secrets, upload_proxy, urls

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(urls.router)
router.include_router(upload_proxy.router)
router.include_router(secrets.router)
router.include_router(objects.router)
