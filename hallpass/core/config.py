"""
Runtime configuration for the hall pass log.
All settings come from environment variables and are read through getters so that
tests and long-running processes pick up changes without re-importing.
"""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Version string
VERSION = "1.0.0"

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/hallpass.db")

# Debug flag
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Partition routing and threshold gate
CUTOVER_HOUR = int(os.getenv("CUTOVER_HOUR", "12"))
USAGE_THRESHOLD = int(os.getenv("USAGE_THRESHOLD", "2"))
TIMEZONE = os.getenv("TIMEZONE", "UTC")

# Concurrency
LOCK_TIMEOUT_SEC = float(os.getenv("LOCK_TIMEOUT_SEC", "5"))

# Matching policies
OPEN_EVENT_POLICY = os.getenv("OPEN_EVENT_POLICY", "allow")  # allow|reject
UNMATCHED_BACK_POLICY = os.getenv("UNMATCHED_BACK_POLICY", "ignore")  # ignore|error
ARCHIVE_RECONCILE_ENABLED = os.getenv("ARCHIVE_RECONCILE_ENABLED", "true").lower() == "true"

# External collaborators
ROSTER_PATH = os.getenv("ROSTER_PATH", "./data/roster.json")
IDENTITY_MAP_PATH = os.getenv("IDENTITY_MAP_PATH", "./data/identities.json")

# Scheduled migration (default disabled)
MIGRATION_ENABLED = os.getenv("MIGRATION_ENABLED", "false").lower() == "true"
MIGRATION_HOUR = int(os.getenv("MIGRATION_HOUR", "18"))
HEARTBEAT_INTERVAL_SEC = int(os.getenv("HEARTBEAT_INTERVAL_SEC", "60"))


def get_db_path() -> str:
    """Current database path."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def get_cutover_hour() -> int:
    return int(os.getenv("CUTOVER_HOUR", str(CUTOVER_HOUR)))


def get_usage_threshold() -> int:
    return int(os.getenv("USAGE_THRESHOLD", str(USAGE_THRESHOLD)))


def get_timezone() -> ZoneInfo:
    """Timezone used to derive the operating day and wall-clock times."""
    return ZoneInfo(os.getenv("TIMEZONE", TIMEZONE))


def get_lock_timeout() -> float:
    return float(os.getenv("LOCK_TIMEOUT_SEC", str(LOCK_TIMEOUT_SEC)))


def get_open_event_policy() -> str:
    """Get open event policy (allow|reject)."""
    return os.getenv("OPEN_EVENT_POLICY", OPEN_EVENT_POLICY).lower()


def get_unmatched_back_policy() -> str:
    """Get unmatched Back policy (ignore|error)."""
    return os.getenv("UNMATCHED_BACK_POLICY", UNMATCHED_BACK_POLICY).lower()


def is_archive_reconcile_enabled() -> bool:
    return os.getenv("ARCHIVE_RECONCILE_ENABLED", "true").lower() == "true"


def get_roster_path() -> str:
    return os.getenv("ROSTER_PATH", ROSTER_PATH)


def get_identity_map_path() -> str:
    return os.getenv("IDENTITY_MAP_PATH", IDENTITY_MAP_PATH)


def is_migration_enabled() -> bool:
    """Check if scheduled end-of-day migration is enabled."""
    return os.getenv("MIGRATION_ENABLED", "false").lower() == "true"


def get_migration_hour() -> int:
    return int(os.getenv("MIGRATION_HOUR", str(MIGRATION_HOUR)))


def get_heartbeat_interval() -> int:
    """Get heartbeat interval in seconds."""
    return int(os.getenv("HEARTBEAT_INTERVAL_SEC", str(HEARTBEAT_INTERVAL_SEC)))


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    try:
        cutover = get_cutover_hour()
        if not 1 <= cutover <= 23:
            issues.append(f"CUTOVER_HOUR must be between 1 and 23: {cutover}")
    except ValueError:
        issues.append("CUTOVER_HOUR must be an integer")

    try:
        if get_usage_threshold() < 1:
            issues.append("USAGE_THRESHOLD must be >= 1")
    except ValueError:
        issues.append("USAGE_THRESHOLD must be an integer")

    try:
        if get_lock_timeout() <= 0:
            issues.append("LOCK_TIMEOUT_SEC must be > 0")
    except ValueError:
        issues.append("LOCK_TIMEOUT_SEC must be a number")

    try:
        get_timezone()
    except (ZoneInfoNotFoundError, ValueError):
        issues.append(f"Invalid TIMEZONE: {os.getenv('TIMEZONE', TIMEZONE)}")

    if get_open_event_policy() not in ["allow", "reject"]:
        issues.append(f"Invalid OPEN_EVENT_POLICY: {get_open_event_policy()}")

    if get_unmatched_back_policy() not in ["ignore", "error"]:
        issues.append(f"Invalid UNMATCHED_BACK_POLICY: {get_unmatched_back_policy()}")

    try:
        hour = get_migration_hour()
        if not 0 <= hour <= 23:
            issues.append(f"MIGRATION_HOUR must be between 0 and 23: {hour}")
    except ValueError:
        issues.append("MIGRATION_HOUR must be an integer")

    try:
        if get_heartbeat_interval() < 1:
            issues.append("HEARTBEAT_INTERVAL_SEC must be >= 1")
    except ValueError:
        issues.append("HEARTBEAT_INTERVAL_SEC must be an integer")

    return issues
