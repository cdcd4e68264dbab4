"""
Partition store: routing of requests to the two working partitions and row-level
access to partition and archive tables.

All functions take an open connection so callers can compose them inside a single
transaction while holding the matching store locks.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional, Tuple, Union

from .config import get_cutover_hour
from .db import ensure_table, table_exists
from .errors import StorageWriteFailure
from .schema import EVENT_COLUMNS, Event, PartitionRef

NOTES_SEPARATOR = "; "

Target = Union[PartitionRef, str]


def select_partition(now: datetime, cutover_hour: int = None) -> PartitionRef:
    """Route a request to the first or second half of the operating day."""
    cutover = get_cutover_hour() if cutover_hour is None else cutover_hour
    return PartitionRef.FIRST_HALF if now.hour < cutover else PartitionRef.SECOND_HALF


def operating_day(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def clock_time(now: datetime) -> str:
    return now.strftime("%H:%M:%S")


def _table(target: Target) -> str:
    return target.table if isinstance(target, PartitionRef) else target


def append_event(conn: sqlite3.Connection, target: Target, event: Event) -> Event:
    """Append an event, creating the table if it does not exist yet."""
    if not event.time_out:
        raise ValueError("time_out is required to append an event")

    table = _table(target)
    ensure_table(conn, table)
    placeholders = ", ".join("?" for _ in EVENT_COLUMNS)
    cursor = conn.execute(
        f"INSERT INTO {table} ({', '.join(EVENT_COLUMNS)}) VALUES ({placeholders})",
        event.as_row(),
    )
    return event.with_row_id(cursor.lastrowid)


def insert_rows(conn: sqlite3.Connection, target: Target, events: List[Event]) -> int:
    """Append rows exactly as read from another table, preserving their order."""
    table = _table(target)
    ensure_table(conn, table)
    placeholders = ", ".join("?" for _ in EVENT_COLUMNS)
    conn.executemany(
        f"INSERT INTO {table} ({', '.join(EVENT_COLUMNS)}) VALUES ({placeholders})",
        [event.as_row() for event in events],
    )
    return len(events)


def list_events(conn: sqlite3.Connection, target: Target) -> List[Event]:
    """Full ordered history of a table, oldest first. Missing tables read as empty."""
    table = _table(target)
    if not table_exists(conn, table):
        return []

    ensure_table(conn, table)
    cursor = conn.execute(
        f"SELECT rowid, {', '.join(EVENT_COLUMNS)} FROM {table} ORDER BY rowid"
    )
    return [Event.from_row(row) for row in cursor.fetchall()]


def merge_annotations(event: Event, period: Optional[str], notes: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Combine annotations supplied on a Back with those already on the row.

    Period is only written when the row has none; notes are appended.
    """
    merged_period = event.period or period

    merged_notes = event.notes
    if notes:
        merged_notes = f"{event.notes}{NOTES_SEPARATOR}{notes}" if event.notes else notes

    return merged_period, merged_notes


def close_event(conn: sqlite3.Connection, target: Target, event: Event, time_back: str,
                period: Optional[str] = None, notes: Optional[str] = None) -> Event:
    """Set time_back on an open row and merge annotations.

    Raises:
        StorageWriteFailure: if the row is gone or was already closed.
    """
    if event.row_id is None:
        raise ValueError("event has no row_id; it was not read from storage")

    table = _table(target)
    merged_period, merged_notes = merge_annotations(event, period, notes)
    cursor = conn.execute(
        f"UPDATE {table} SET time_back = ?, period = ?, notes = ? "
        f"WHERE rowid = ? AND (time_back IS NULL OR time_back = '')",
        (time_back, merged_period, merged_notes, event.row_id),
    )
    if cursor.rowcount != 1:
        raise StorageWriteFailure()

    return Event(
        member_name=event.member_name,
        member_id=event.member_id,
        category=event.category,
        actor_name=event.actor_name,
        time_out=event.time_out,
        time_back=time_back,
        event_date=event.event_date,
        period=merged_period,
        notes=merged_notes,
        row_id=event.row_id,
    )


def clear_partition(conn: sqlite3.Connection, target: Target) -> int:
    """Delete every data row; the table and its header stay."""
    table = _table(target)
    if not table_exists(conn, table):
        return 0
    cursor = conn.execute(f"DELETE FROM {table}")
    return cursor.rowcount
