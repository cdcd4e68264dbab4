"""
Heartbeat scheduler and the daily migration task.
"""

import threading
import time
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from hallpass.core import heartbeat
from hallpass.core.heartbeat import (
    DailyMigrationTask,
    get_status,
    list_tasks,
    register_task,
    run_task,
    should_run_task,
    start,
    stop,
    unregister_task,
)


@pytest.fixture(autouse=True)
def reset_heartbeat():
    """Reset heartbeat state between tests."""
    heartbeat.tasks.clear()
    heartbeat.running = False
    heartbeat.shutdown_event = None
    yield
    heartbeat.tasks.clear()


class TestHeartbeatRegistration:
    """Task registration."""

    def test_register_task_valid(self):
        register_task("test_task", 30, lambda: None)
        assert list_tasks() == ["test_task"]

    def test_register_task_invalid_func(self):
        with pytest.raises(ValueError, match="Task function must be callable"):
            register_task("bad_task", 30, "not_callable")

    def test_register_task_invalid_interval(self):
        with pytest.raises(ValueError, match="Interval must be >= 1 second"):
            register_task("bad_task", 0, lambda: None)

    def test_register_duplicate_task_replaces(self):
        register_task("duplicate", 30, lambda: None)
        register_task("duplicate", 60, lambda: None)

        assert len(list_tasks()) == 1
        assert heartbeat.tasks["duplicate"]["interval"] == 60

    def test_register_rejects_invalid_config(self, monkeypatch):
        monkeypatch.setenv("CUTOVER_HOUR", "30")
        with pytest.raises(ValueError, match="Configuration invalid"):
            register_task("task", 30, lambda: None)

    def test_unregister_task(self):
        register_task("test_task", 30, lambda: None)
        unregister_task("test_task")
        assert "test_task" not in list_tasks()

    def test_unregister_nonexistent_task(self):
        unregister_task("nonexistent")


class TestHeartbeatScheduling:
    """Due-ness and execution of single tasks."""

    def test_should_run_first_time(self):
        assert should_run_task("test", {"last_run": None, "interval": 30}) is True

    def test_should_not_run_before_interval(self):
        assert should_run_task("test", {"last_run": time.monotonic(), "interval": 30}) is False

    def test_should_run_after_interval(self):
        assert should_run_task("test", {"last_run": time.monotonic() - 31, "interval": 30}) is True

    def test_run_task_records_last_run(self):
        func = MagicMock()
        task_info = {"func": func, "interval": 30, "last_run": None}

        run_task("test", task_info)

        func.assert_called_once()
        assert task_info["last_run"] is not None

    def test_failing_task_raises_runtime_error_and_still_records_run(self):
        task_info = {"func": MagicMock(side_effect=ValueError("boom")), "interval": 30, "last_run": None}

        with pytest.raises(RuntimeError, match="Task 'test' failed"):
            run_task("test", task_info)

        assert task_info["last_run"] is not None


class TestHeartbeatLoop:
    """Start/stop of the cooperative loop."""

    def test_start_skipped_when_disabled(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_ENABLED", "false")
        func = MagicMock()
        register_task("task", 30, func)

        start()

        func.assert_not_called()
        assert get_status()["status"] == "disabled"

    def test_loop_runs_tasks_until_stopped(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_ENABLED", "true")
        ran = threading.Event()

        def task():
            ran.set()

        register_task("task", 30, task)
        thread = threading.Thread(target=start)
        thread.start()
        try:
            assert ran.wait(5)
            assert get_status()["status"] == "running"
        finally:
            stop()
            thread.join(5)

        assert not thread.is_alive()
        assert get_status()["status"] == "stopped"

    def test_failing_task_does_not_stop_loop(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_ENABLED", "true")
        ran = threading.Event()

        register_task("broken", 30, MagicMock(side_effect=ValueError("boom")))
        register_task("healthy", 30, ran.set)

        with patch("hallpass.core.heartbeat.logger") as mock_logger:
            thread = threading.Thread(target=start)
            thread.start()
            try:
                assert ran.wait(5)
            finally:
                stop()
                thread.join(5)

        mock_logger.error.assert_called()


class TestDailyMigrationTask:

    def make_task(self, now):
        clock = MagicMock(return_value=now)
        migrate = MagicMock()
        return DailyMigrationTask(migrate, hour=18, clock=clock), migrate, clock

    def test_not_due_before_hour(self):
        task, migrate, _ = self.make_task(datetime(2025, 1, 6, 17, 59))

        assert task() is False
        migrate.assert_not_called()

    def test_runs_once_per_day(self):
        task, migrate, clock = self.make_task(datetime(2025, 1, 6, 18, 0))

        assert task() is True
        clock.return_value = datetime(2025, 1, 6, 21, 0)
        assert task() is False
        migrate.assert_called_once()

    def test_runs_again_next_day(self):
        task, migrate, clock = self.make_task(datetime(2025, 1, 6, 18, 0))
        task()

        clock.return_value = datetime(2025, 1, 7, 18, 30)
        assert task() is True
        assert migrate.call_count == 2

    def test_failed_migration_is_retried(self):
        task, migrate, _ = self.make_task(datetime(2025, 1, 6, 18, 0))
        migrate.side_effect = [RuntimeError("busy"), None]

        with pytest.raises(RuntimeError):
            task()
        assert task() is True

    def test_hour_from_environment(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_HOUR", "7")
        assert DailyMigrationTask(MagicMock()).hour == 7
