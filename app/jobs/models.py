"""Task and queued-job data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TaskStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    FAILED = "failed"


class Task(BaseModel):
    """One row of the task registry.

    download_link is only set while status is COMPLETED.
    """
    id: str
    status: TaskStatus = TaskStatus.PROCESSING
    download_link: Optional[str] = None


class QueuedJob(BaseModel):
    """In-memory unit of work; lives from enqueue until the pipeline finishes."""
    task_id: str
    input_path: str
    output_path: str


class ChromaKeyParams(BaseModel):
    similarity: float = 0.2
    blend: float = 0.2
    output_size: int = 800
