#!/usr/bin/env python3
"""
Runs the heartbeat loop with the end-of-day archive migration task.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hallpass.core.archive import migrate
from hallpass.core.config import get_heartbeat_interval, get_migration_hour, is_migration_enabled
from hallpass.core.db import init_db
from hallpass.core.heartbeat import DailyMigrationTask, register_task, start


def main():
    if not is_migration_enabled():
        print("Scheduled migration disabled. Set MIGRATION_ENABLED=true to run the heartbeat.")
        return 0

    init_db()
    register_task("daily_migration", get_heartbeat_interval(), DailyMigrationTask(migrate))
    print(f"Archive migration scheduled daily after {get_migration_hour():02d}:00")
    start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
