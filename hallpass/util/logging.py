"""
Structured operational logging for the hall pass log.
Diagnostic detail (tracebacks, intermediate state) lands here and never in caller responses.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for usage, migration and maintenance operations."""

    def __init__(self, name: str = "hallpass"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_usage_event(self, action: str, member_id: str, partition: str, outcome: str,
                        count_before: int = None, count_after: int = None, actor: str = None):
        """Log an Out/Back request outcome."""
        details = {"member_id": member_id, "partition": partition}
        if count_before is not None:
            details["count_before"] = count_before
        if count_after is not None:
            details["count_after"] = count_after
        if actor:
            details["actor"] = actor

        level = logging.WARNING if outcome == "unmatched" else logging.INFO
        self.log_operation(f"usage.{action.lower()}", outcome, details, level=level)

    def log_migration(self, moved: int, per_partition: Dict[str, int], skipped_blank: int = 0, status: str = "success"):
        """Log an archive migration run."""
        details = {"moved": moved, "per_partition": per_partition}
        if skipped_blank:
            details["skipped_blank"] = skipped_blank

        self.log_operation("archive.migrate", status, details)

    def log_schema_upgrade(self, table: str, added_columns: List[str]):
        """Log columns added to an existing table."""
        self.log_operation("schema.upgrade", "applied", {"table": table, "added_columns": added_columns})

    def log_lock_timeout(self, stores: List[str], timeout: float):
        """Log a lock acquisition that gave up."""
        self.log_operation("store.lock", "timeout", {"stores": stores, "timeout_sec": timeout}, level=logging.WARNING)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def exception(self, message: str) -> None:
        """Log an error message with the active traceback."""
        self.logger.exception(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with redaction of free-text fields."""
    if sensitive_fields is None:
        sensitive_fields = ['notes', 'member_name', 'period']

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        sanitized_payload = {}
        for k, v in payload.items():
            if k not in sensitive_fields:
                # Truncate long values
                if isinstance(v, str) and len(v) > 100:
                    sanitized_payload[k] = v[:97] + "..."
                else:
                    sanitized_payload[k] = v
            else:
                sanitized_payload[k] = "[REDACTED]"
        log_details["payload"] = sanitized_payload

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)
