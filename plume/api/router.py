"""API router aggregator."""

from fastapi import APIRouter

from plume.api.routes import compression, events, images

api_router = APIRouter()
api_router.include_router(images.router)
api_router.include_router(compression.router)
api_router.include_router(events.router)
