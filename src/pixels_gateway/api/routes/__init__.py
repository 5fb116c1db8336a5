"""HTTP routers."""

from fastapi import APIRouter

from . import batch, config, health, images

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(images.router)
api_router.include_router(batch.router)
api_router.include_router(config.router)

__all__ = ["api_router"]
