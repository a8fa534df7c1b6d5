"""Bounded-concurrency worker pool draining the work queue.

Every submit and every finished job triggers a drain pass. A drain pass
starts pipelines in FIFO order until the concurrency bound is reached or
the queue is empty, so the pool grows to its limit under load and idles
when there is nothing queued. Draining is a loop, never a recursive call
chain, so a burst of queued jobs does not grow the stack.
"""

import asyncio
import logging
import os
from typing import Optional, Set

from app.db.task_registry import TaskRegistry
from app.jobs.dispatcher import TaskDispatcher
from app.jobs.models import ChromaKeyParams, QueuedJob
from app.jobs.work_queue import WorkQueue
from app.processing.engine import ProcessingEngine
from app.processing.errors import TransformError
from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


class WorkerPool(TaskDispatcher):
    """Runs queued jobs through the processing engine, at most N at a time."""

    def __init__(
        self,
        registry: TaskRegistry,
        store: ArtifactStore,
        engine: ProcessingEngine,
        max_concurrent: int = 1,
        params: Optional[ChromaKeyParams] = None,
        queue: Optional[WorkQueue] = None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._registry = registry
        self._store = store
        self._engine = engine
        self._max_concurrent = max_concurrent
        self._params = params or ChromaKeyParams()
        self._queue = queue or WorkQueue()
        self._in_flight = 0
        self._running = False
        self._stopped = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def queued(self) -> int:
        return len(self._queue)

    def submit(self, job: QueuedJob) -> None:
        """Queue a job. Jobs submitted before start() wait for it.

        Raises:
            RuntimeError: if the pool has been stopped
        """
        if self._stopped:
            logger.warning("Rejected task %s: worker pool is stopped", job.task_id)
            raise RuntimeError("Worker pool is stopped")
        self._queue.enqueue(job)
        logger.info("Queued task %s (%d waiting)", job.task_id, len(self._queue))
        self._drain()

    async def start(self) -> None:
        self._running = True
        self._drain()

    async def stop(self) -> None:
        self._running = False
        self._stopped = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight task(s)", len(tasks))

    async def join(self) -> None:
        """Wait until the queue is drained and nothing is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _drain(self) -> None:
        if not self._running:
            return
        while self._in_flight < self._max_concurrent:
            job = self._queue.try_dequeue()
            if job is None:
                return
            self._in_flight += 1
            task = asyncio.create_task(self._run(job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, job: QueuedJob) -> None:
        logger.info("Processing task %s (%d in flight)", job.task_id, self._in_flight)
        try:
            await self.process(job)
        finally:
            self._in_flight -= 1
            self._drain()

    async def process(self, job: QueuedJob) -> None:
        """Run the full pipeline for one job and commit its terminal state.

        Engine failures are recorded as ``error``; they never propagate.
        Input and working artifacts are removed before the registry update.
        """
        task_id = job.task_id
        try:
            color = await self._engine.analyze(job.input_path, self._store.working_dir(task_id))
            await self._engine.transform(job.input_path, job.output_path, color, self._params)
            if not os.path.isfile(job.output_path):
                raise TransformError(f"No output written to {job.output_path}")
        except Exception:
            logger.exception("Processing failed for task %s", task_id)
            self._store.cleanup(task_id)
            self._registry.set_error(task_id)
            return

        self._store.cleanup(task_id)
        self._registry.set_completed(task_id, self._store.download_link(task_id))
