"""Aggregate API v1 router: mounts all sub-routers."""
from fastapi import APIRouter
from corpus_admin.api.v1 import sources, chunks, notifications

router = APIRouter(prefix="/api/v1")

router.include_router(sources.router, tags=["Sources"])
router.include_router(chunks.router, tags=["Chunks"])
router.include_router(notifications.router, tags=["Notifications"])
