"""Liveness and queue health endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.dependencies import get_dispatcher
from app.jobs.worker_pool import WorkerPool

router = APIRouter()


@router.get("/test", response_class=PlainTextResponse)
async def liveness():
    return "ALIVE"


@router.get("/health")
async def health_check(dispatcher: WorkerPool = Depends(get_dispatcher)):
    """Service health and worker pool occupancy."""
    return {
        "status": "healthy",
        "queued": dispatcher.queued,
        "in_flight": dispatcher.in_flight,
        "max_concurrent_tasks": dispatcher.max_concurrent,
    }
