"""Pytest fixtures for task orchestration and API tests."""

import asyncio
import os
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import List, Optional, Set

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.db.task_registry import TaskRegistry
from app.jobs.models import ChromaKeyParams
from app.main import create_app
from app.processing.engine import ProcessingEngine
from app.processing.errors import AnalysisError, TransformError
from app.storage.artifacts import ArtifactStore

OUTPUT_BYTES = b"\x1aE\xdf\xa3webm-output"


class FakeEngine(ProcessingEngine):
    """Stand-in for the ffmpeg engine.

    Writes a frame into the working dir during analysis and OUTPUT_BYTES to
    the output path during transform. Tracks how many pipelines overlap.
    """

    def __init__(self):
        self.started: List[str] = []
        self.fail_analyze: Set[str] = set()
        self.fail_transform: Set[str] = set()
        self.skip_output: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self.delay = 0.0
        self.on_start: Optional[Callable[[str], None]] = None
        self.active = 0
        self.max_active = 0

    async def analyze(self, input_path: str, working_dir: str) -> str:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.append(input_path)
        if self.on_start:
            self.on_start(input_path)
        os.makedirs(working_dir, exist_ok=True)
        Path(working_dir, "frame-001.jpg").write_bytes(b"frame")
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            if input_path in self.fail_analyze:
                raise AnalysisError(f"corrupt input {input_path}")
        except BaseException:
            self.active -= 1
            raise
        return "#00ff00"

    async def transform(
        self, input_path: str, output_path: str, color: str, params: ChromaKeyParams
    ) -> None:
        try:
            await asyncio.sleep(0)
            if input_path in self.fail_transform:
                raise TransformError(f"encoder crashed on {input_path}")
            if input_path not in self.skip_output:
                Path(output_path).write_bytes(OUTPUT_BYTES)
        finally:
            self.active -= 1


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        processing_root=str(tmp_path),
        database_path=str(tmp_path / "tasks.sqlite"),
        max_upload_bytes=1024,
        upload_chunk_bytes=256,
    )


@pytest.fixture
def registry(settings: Settings) -> Generator[TaskRegistry, None, None]:
    reg = TaskRegistry(settings.database_path)
    yield reg
    reg.close()


@pytest.fixture
def store(settings: Settings) -> ArtifactStore:
    s = ArtifactStore(settings.processing_root)
    s.ensure_dirs()
    return s


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def make_input(store: ArtifactStore) -> Callable[[str], str]:
    """Create the uploaded input file for a task id."""

    def _make(task_id: str) -> str:
        path = store.input_path(task_id)
        Path(path).write_bytes(b"fake mp4 payload")
        return path

    return _make


@pytest.fixture
def app(settings: Settings, engine: FakeEngine) -> FastAPI:
    return create_app(settings, engine=engine)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the app lifespan (recovery, worker pool) running."""
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
