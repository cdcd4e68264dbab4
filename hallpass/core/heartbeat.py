"""
Heartbeat scheduler - runs periodic operational tasks such as end-of-day migration.

A cooperative loop checks registered tasks and runs the ones that are due. Task
failures are logged and isolated; the loop keeps going.
"""

import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from .config import get_migration_hour, get_timezone, is_migration_enabled, validate_config
from ..util.logging import logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
running = False
shutdown_event = None


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call (should be fast and not block)
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_config()
    if issues:
        raise ValueError(f"Configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None
    }

    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def start():
    """
    Start the heartbeat loop. Blocks until stop() is called or the process is interrupted.
    """
    global running, shutdown_event

    if not is_migration_enabled():
        logger.info("Scheduled migration disabled (MIGRATION_ENABLED=false). Skipping heartbeat start.")
        return

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_config()
    if issues:
        raise ValueError(f"Configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting heartbeat loop with tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            for name, task_info in list(tasks.items()):
                if should_run_task(name, task_info):
                    try:
                        run_task(name, task_info)
                    except RuntimeError as e:
                        logger.error(str(e))

            shutdown_event.wait(0.5)

    except KeyboardInterrupt:
        logger.info("Heartbeat interrupted by user")
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def stop():
    """Stop the heartbeat loop gracefully."""
    global running

    if not running:
        return

    running = False
    if shutdown_event:
        shutdown_event.set()


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing.

    The last run time is recorded even when the task fails so a broken task does not
    spin every cycle.
    """
    start_time = time.monotonic()

    try:
        task_info["func"]()
    except Exception as e:
        duration = time.monotonic() - start_time
        raise RuntimeError(f"Task '{name}' failed after {duration:.2f}s: {e}") from e
    finally:
        task_info["last_run"] = time.monotonic()

    logger.debug(f"Task '{name}' completed in {time.monotonic() - start_time:.2f}s")


def get_status():
    """Return current heartbeat status for monitoring."""
    if not is_migration_enabled():
        return {"status": "disabled", "reason": "MIGRATION_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
            }
            for name, info in tasks.items()
        },
    }


class DailyMigrationTask:
    """Callable heartbeat task that migrates once per operating day after a cutoff hour."""

    def __init__(self, migrate: Callable[[], object], hour: int = None,
                 clock: Callable[[], datetime] = None):
        self.migrate = migrate
        self.hour = get_migration_hour() if hour is None else hour
        self.clock = clock or (lambda: datetime.now(get_timezone()))
        self.last_migrated_day: Optional[str] = None

    def __call__(self) -> bool:
        """Run the migration if it is due. Returns True when a migration ran."""
        now = self.clock()
        today = now.strftime("%Y-%m-%d")
        if now.hour < self.hour or self.last_migrated_day == today:
            return False

        self.migrate()
        self.last_migrated_day = today
        return True
