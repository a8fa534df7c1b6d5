"""Startup reconciliation of tasks interrupted by an unclean shutdown."""

import logging
from typing import List

from app.db.task_registry import TaskRegistry
from app.jobs.models import TaskStatus
from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


def recover_interrupted_tasks(registry: TaskRegistry, store: ArtifactStore) -> List[str]:
    """Fail every task still marked ``processing`` and remove its temp artifacts.

    Must run before the worker pool starts. Interrupted tasks are not
    re-queued; callers resubmit to get a new task id.

    Returns:
        Ids of the tasks that were moved to ``failed``.
    """
    interrupted = registry.list_by_status(TaskStatus.PROCESSING)
    if not interrupted:
        return []

    logger.info("Found %d interrupted task(s); marking them failed", len(interrupted))
    failed = []
    for task in interrupted:
        if registry.set_failed(task.id):
            failed.append(task.id)
        store.cleanup(task.id)
    return failed
