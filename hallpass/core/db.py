"""
SQLite foundation: connections, transactions and the shared table layout.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, List

from .config import ensure_db_directory, get_db_path, get_lock_timeout
from .errors import StorageWriteFailure, StoreBusy
from .schema import ARCHIVE_TABLE, EVENT_COLUMNS, PartitionRef
from ..util.logging import logger


@contextmanager
def get_db(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection in autocommit mode."""
    path = db_path or get_db_path()
    ensure_db_directory(path)
    conn = sqlite3.connect(path, timeout=get_lock_timeout(), isolation_level=None)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Run a block inside BEGIN IMMEDIATE; commit on success, roll back on any error.

    SQLite errors are translated into StoreBusy (lock contention) or
    StorageWriteFailure (everything else).
    """
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as e:
        raise _translate(e) from e

    try:
        yield conn
    except BaseException as e:
        conn.rollback()
        if isinstance(e, sqlite3.Error):
            raise _translate(e) from e
        raise
    else:
        try:
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise _translate(e) from e


def _translate(error: sqlite3.Error) -> StorageWriteFailure:
    message = str(error).lower()
    if isinstance(error, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        return StoreBusy()
    logger.error(f"SQLite error: {error}")
    return StorageWriteFailure()


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    )
    return cursor.fetchone() is not None


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    """Column names of a table in header order."""
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return [col[1] for col in cursor.fetchall()]


def ensure_table(conn: sqlite3.Connection, table: str) -> List[str]:
    """Create an event table if absent, otherwise upgrade its header in place.

    Missing columns are appended with ALTER TABLE; existing rows and columns are
    left alone, so running this repeatedly is harmless.

    Returns:
        Names of the columns that were added (empty when nothing changed).
    """
    if not table_exists(conn, table):
        column_defs = ", ".join(f"{column} TEXT" for column in EVENT_COLUMNS)
        conn.execute(f"CREATE TABLE {table} ({column_defs})")
        return []

    existing = table_columns(conn, table)
    added = []
    for column in EVENT_COLUMNS:
        if column not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} TEXT")
            added.append(column)

    if added:
        logger.log_schema_upgrade(table, added)
    return added


def init_db(db_path: str = None):
    """Create both working partitions (header only) if they do not exist yet."""
    with get_db(db_path) as conn:
        with transaction(conn):
            for ref in PartitionRef:
                ensure_table(conn, ref.table)


def health_check(db_path: str = None) -> bool:
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            required_tables = [ref.table for ref in PartitionRef]
            return all(table_exists(conn, table) for table in required_tables)
    except Exception:
        return False


def known_tables() -> List[str]:
    """Every table holding events, in migration order."""
    return [ref.table for ref in PartitionRef] + [ARCHIVE_TABLE]
