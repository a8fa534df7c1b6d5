"""Aggregate all API routers."""

from fastapi import APIRouter
from app.api.health import router as health_router
from app.api.upload import router as upload_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(upload_router, tags=["tasks"])
