"""
API v1 - photo and rate limit endpoints.
"""
from fastapi import APIRouter
from forumkit.api.v1.limits import router as limits_router
from forumkit.api.v1.photos import router as photos_router

router = APIRouter()
router.include_router(photos_router)
router.include_router(limits_router)
