"""Green screen removal backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.config import Settings, get_settings
from app.db.task_registry import TaskRegistry
from app.jobs.models import ChromaKeyParams
from app.jobs.recovery import recover_interrupted_tasks
from app.jobs.worker_pool import WorkerPool
from app.processing.engine import FfmpegEngine, ProcessingEngine
from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[ProcessingEngine] = None,
) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or FfmpegEngine(frame_rate=settings.frame_sample_rate)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Processing root: %s", settings.processing_root)
        logger.info("Task database: %s", settings.database_path)
        logger.info("Max concurrent tasks: %d", settings.max_concurrent_tasks)

        store = ArtifactStore(
            settings.processing_root,
            input_extension=settings.input_extension,
            output_extension=settings.output_extension,
        )
        store.ensure_dirs()
        registry = TaskRegistry(settings.database_path)

        # Interrupted tasks must be failed before any new work is accepted
        failed = recover_interrupted_tasks(registry, store)
        if failed:
            logger.info("Recovered %d interrupted task(s)", len(failed))

        dispatcher = WorkerPool(
            registry,
            store,
            engine,
            max_concurrent=settings.max_concurrent_tasks,
            params=ChromaKeyParams(
                similarity=settings.chroma_similarity,
                blend=settings.chroma_blend,
                output_size=settings.output_size,
            ),
        )
        await dispatcher.start()
        logger.info("Worker pool started")

        app.state.store = store
        app.state.registry = registry
        app.state.dispatcher = dispatcher

        yield

        logger.info("Shutting down")
        await dispatcher.stop()
        app.state.dispatcher = None
        app.state.registry = None
        registry.close()

    app = FastAPI(
        title="Green Screen Removal Service",
        description="Asynchronous background-color removal for uploaded videos",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app


def run() -> None:
    """Console entry point: configure logging and serve the app."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        ssl_keyfile=settings.ssl_keyfile,
        ssl_certfile=settings.ssl_certfile,
    )


if __name__ == "__main__":
    run()
