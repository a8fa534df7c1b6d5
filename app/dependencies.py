"""FastAPI dependencies: shared services attached to app.state during lifespan."""

from fastapi import HTTPException, Request

from app.config import Settings
from app.db.task_registry import TaskRegistry
from app.jobs.worker_pool import WorkerPool
from app.storage.artifacts import ArtifactStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> TaskRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Task registry not ready")
    return registry


def get_store(request: Request) -> ArtifactStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Artifact store not ready")
    return store


def get_dispatcher(request: Request) -> WorkerPool:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher not ready")
    return dispatcher
