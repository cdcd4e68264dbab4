"""
Archive migrator - drains both working partitions into the append-only archive.

Rows move in a fixed order (AM rows before PM rows, each in insertion order) inside a
single transaction, so an event is either still in its partition or already in the
archive, never both and never neither.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import get_db_path
from .db import get_db, transaction
from .locks import STORE_ORDER, store_locks
from .partitions import clear_partition, insert_rows, list_events
from .schema import ARCHIVE_TABLE, Event, PartitionRef
from ..util.logging import logger


@dataclass
class MigrationReport:
    """Outcome of one migration run."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    moved: int = 0
    per_partition: Dict[str, int] = field(default_factory=dict)
    skipped_blank: int = 0

    @property
    def is_noop(self) -> bool:
        return self.moved == 0 and self.skipped_blank == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": "archive_migration",
            "started_at": self.started_at.isoformat(),
            "moved": self.moved,
            "per_partition": self.per_partition,
            "skipped_blank": self.skipped_blank,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def migrate(db_path: str = None, timeout: float = None) -> MigrationReport:
    """Move every finalized row from both working partitions into the archive.

    Blank rows are dropped rather than archived. Partitions keep their header.
    Safe to call with nothing to move.

    Raises:
        StoreBusy: if a concurrent writer holds any of the stores past the timeout.
        StorageWriteFailure: if SQLite fails; nothing is moved in that case.
    """
    report = MigrationReport(started_at=datetime.now())

    with store_locks(db_path or get_db_path(), STORE_ORDER, timeout=timeout):
        with get_db(db_path) as conn:
            with transaction(conn):
                pending: List[Event] = []
                for ref in PartitionRef:
                    rows = list_events(conn, ref)
                    kept = [row for row in rows if not row.is_blank()]
                    report.skipped_blank += len(rows) - len(kept)
                    report.per_partition[ref.value] = len(kept)
                    pending.extend(kept)

                if pending:
                    insert_rows(conn, ARCHIVE_TABLE, pending)

                for ref in PartitionRef:
                    clear_partition(conn, ref)

                report.moved = len(pending)

    report.completed_at = datetime.now()
    if report.is_noop:
        logger.debug("Archive migration found nothing to move")
    else:
        logger.log_migration(report.moved, report.per_partition, report.skipped_blank)
    return report


def list_archive(db_path: str = None) -> List[Event]:
    """Archived events in append order."""
    with get_db(db_path) as conn:
        return list_events(conn, ARCHIVE_TABLE)
