"""API v1 router combining all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import annotations, images, parts, sections, sync

api_router = APIRouter()

api_router.include_router(sections.router, prefix="/sections", tags=["sections"])
api_router.include_router(parts.router, prefix="/parts", tags=["parts"])
api_router.include_router(annotations.router, prefix="/annotations", tags=["annotations"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(images.router, prefix="/images", tags=["images"])
