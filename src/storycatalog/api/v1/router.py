"""API v1 router aggregator."""

from fastapi import APIRouter

from storycatalog.api.v1.admin import router as admin_router
from storycatalog.api.v1.genres import router as genres_router
from storycatalog.api.v1.ratings import router as ratings_router
from storycatalog.api.v1.stories import router as stories_router

router = APIRouter(prefix="/api/v1")
router.include_router(stories_router)
router.include_router(genres_router)
router.include_router(ratings_router)
router.include_router(admin_router)
