"""Tests for TaskRegistry."""

from app.db.task_registry import TaskRegistry
from app.jobs.models import TaskStatus


class TestCreateOrReset:
    def test_new_task_is_processing(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        task = registry.get("t1")
        assert task is not None
        assert task.status == TaskStatus.PROCESSING
        assert task.download_link is None

    def test_existing_row_is_reset(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        registry.set_completed("t1", "/download/t1.webm")

        registry.create_or_reset("t1")

        task = registry.get("t1")
        assert task.status == TaskStatus.PROCESSING
        assert task.download_link is None
        assert len(registry.list_by_status(TaskStatus.PROCESSING)) == 1


class TestTransitions:
    def test_completed_records_link(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        assert registry.set_completed("t1", "/download/t1.webm") is True

        task = registry.get("t1")
        assert task.status == TaskStatus.COMPLETED
        assert task.download_link == "/download/t1.webm"

    def test_error_has_no_link(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        assert registry.set_error("t1") is True

        task = registry.get("t1")
        assert task.status == TaskStatus.ERROR
        assert task.download_link is None

    def test_failed(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        assert registry.set_failed("t1") is True
        assert registry.get("t1").status == TaskStatus.FAILED

    def test_unknown_id_is_ignored(self, registry: TaskRegistry):
        assert registry.set_completed("missing", "/download/missing.webm") is False
        assert registry.set_error("missing") is False
        assert registry.get("missing") is None

    def test_terminal_states_do_not_change(self, registry: TaskRegistry):
        registry.create_or_reset("t1")
        registry.set_completed("t1", "/download/t1.webm")

        assert registry.set_error("t1") is False
        assert registry.set_failed("t1") is False

        task = registry.get("t1")
        assert task.status == TaskStatus.COMPLETED
        assert task.download_link == "/download/t1.webm"


def test_list_by_status(registry: TaskRegistry):
    for task_id in ("a", "b", "c"):
        registry.create_or_reset(task_id)
    registry.set_error("b")

    processing = registry.list_by_status(TaskStatus.PROCESSING)
    assert [t.id for t in processing] == ["a", "c"]
    assert [t.id for t in registry.list_by_status(TaskStatus.ERROR)] == ["b"]
    assert registry.list_by_status(TaskStatus.FAILED) == []


def test_rows_survive_reopen(settings, registry: TaskRegistry):
    registry.create_or_reset("t1")
    registry.set_completed("t1", "/download/t1.webm")
    registry.create_or_reset("t2")

    reopened = TaskRegistry(settings.database_path)
    try:
        assert reopened.get("t1").status == TaskStatus.COMPLETED
        assert reopened.get("t2").status == TaskStatus.PROCESSING
    finally:
        reopened.close()
