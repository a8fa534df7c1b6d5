"""FIFO queue of pending jobs."""

import threading
from collections import deque
from typing import Deque, Optional

from app.jobs.models import QueuedJob


class WorkQueue:
    """Append-at-tail / remove-at-head queue. Neither operation blocks."""

    def __init__(self):
        self._items: Deque[QueuedJob] = deque()
        self._lock = threading.Lock()

    def enqueue(self, job: QueuedJob) -> None:
        with self._lock:
            self._items.append(job)

    def try_dequeue(self) -> Optional[QueuedJob]:
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
