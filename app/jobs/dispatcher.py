"""Task dispatcher interface."""

from abc import ABC, abstractmethod

from app.jobs.models import QueuedJob


class TaskDispatcher(ABC):
    """Abstract interface for accepting and running queued jobs."""

    @abstractmethod
    def submit(self, job: QueuedJob) -> None:
        """Queue a job for processing. Never blocks on the pipeline."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start accepting and dispatching jobs."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop dispatching and cancel in-flight pipelines."""
        ...
