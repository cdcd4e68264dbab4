"""
Maintenance routines: database integrity checks and in-place schema upgrades.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_db_path
from .db import ensure_table, get_db, known_tables, table_columns, table_exists, transaction
from .locks import STORE_ORDER, store_locks
from .schema import ARCHIVE_TABLE, EVENT_COLUMNS, PartitionRef


@dataclass
class MaintenanceReport:
    """Maintenance operation report."""
    operation: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    issues_found: int = 0
    issues_resolved: int = 0
    actions_taken: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "issues_found": self.issues_found,
            "issues_resolved": self.issues_resolved,
            "actions_taken": self.actions_taken,
            "recommendations": self.recommendations,
            "errors": self.errors,
            "metadata": self.metadata
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def check_database_integrity(db_path: str = None) -> MaintenanceReport:
    """
    Check SQLite integrity, table presence and column layout.

    Returns:
        MaintenanceReport: Detailed integrity check results
    """
    report = MaintenanceReport(
        operation="database_integrity_check",
        started_at=datetime.now()
    )
    path = Path(db_path or get_db_path())

    if not path.exists():
        report.errors.append(f"Database file not found: {path}")
        report.completed_at = datetime.now()
        return report

    if path.stat().st_size == 0:
        report.errors.append("Database file is empty")
        report.completed_at = datetime.now()
        return report

    try:
        with get_db(str(path)) as conn:
            integrity_result = conn.execute("PRAGMA integrity_check").fetchone()
            if integrity_result and integrity_result[0] == "ok":
                report.metadata["integrity_status"] = "passed"
            else:
                report.issues_found += 1
                report.errors.append(f"Integrity check failed: {integrity_result}")
                report.recommendations.append("Restore the database from a copy")

            for table in known_tables():
                if not table_exists(conn, table):
                    if table != ARCHIVE_TABLE:
                        report.issues_found += 1
                        report.recommendations.append(f"Table {table} missing - run init or upgrade")
                    continue

                report.metadata[f"{table}_rows"] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                missing = [column for column in EVENT_COLUMNS if column not in table_columns(conn, table)]
                if missing:
                    report.issues_found += 1
                    report.recommendations.append(f"Table {table} lacks columns {missing} - run schema upgrade")

            open_count = 0
            for ref in PartitionRef:
                if table_exists(conn, ref.table) and "time_back" in table_columns(conn, ref.table):
                    open_count += conn.execute(
                        f"SELECT COUNT(*) FROM {ref.table} "
                        f"WHERE (time_back IS NULL OR time_back = '') AND time_out IS NOT NULL AND time_out != ''"
                    ).fetchone()[0]
            report.metadata["open_events"] = open_count

    except sqlite3.Error as e:
        report.errors.append(f"Database integrity check failed: {e}")

    report.completed_at = datetime.now()
    return report


def upgrade_schema(db_path: str = None) -> MaintenanceReport:
    """Create missing partitions and add missing columns to every event table."""
    report = MaintenanceReport(
        operation="schema_upgrade",
        started_at=datetime.now()
    )

    with store_locks(db_path or get_db_path(), STORE_ORDER):
        with get_db(db_path) as conn:
            with transaction(conn):
                for table in known_tables():
                    if table == ARCHIVE_TABLE and not table_exists(conn, table):
                        continue
                    created = not table_exists(conn, table)
                    added = ensure_table(conn, table)
                    if created:
                        report.actions_taken.append(f"Created {table}")
                    elif added:
                        report.issues_found += 1
                        report.issues_resolved += 1
                        report.actions_taken.append(f"Added {', '.join(added)} to {table}")

    report.completed_at = datetime.now()
    return report
