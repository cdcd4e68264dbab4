"""
Event matcher: finds the open event a Back request should close.

Matching is by (member_name, member_id, category, actor_name) and always takes the
most recently opened candidate. The search order is:

1. the partition selected by the current time of day,
2. the other working partition (the cutover may have passed since the Out),
3. the archive, restricted to today's operating day (the Out may already have been
   migrated), when archive reconciliation is enabled.
"""

import sqlite3
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .partitions import list_events
from .schema import ARCHIVE_TABLE, Event, PartitionRef

MatchKey = Tuple[str, str, str, str]


@dataclass(frozen=True)
class Match:
    """An open event together with where it lives."""

    location: str  # AM, PM or archive
    table: str
    event: Event

    @property
    def in_archive(self) -> bool:
        return self.table == ARCHIVE_TABLE


def latest_open(events: Iterable[Event], key: MatchKey, operating_day: str = None) -> Optional[Event]:
    """Most recent open event with the given match key, scanning newest to oldest."""
    for event in reversed(list(events)):
        if event.match_key != key or not event.is_open:
            continue
        if operating_day is not None and event.event_date != operating_day:
            continue
        return event
    return None


def find_open_event(conn: sqlite3.Connection, current: PartitionRef, key: MatchKey,
                    operating_day: str = None, include_archive: bool = True) -> Optional[Match]:
    """Locate the event a Back should close, or None when nothing is open."""
    for ref in (current, current.other):
        event = latest_open(list_events(conn, ref), key)
        if event is not None:
            return Match(location=ref.value, table=ref.table, event=event)

    if include_archive and operating_day is not None:
        event = latest_open(list_events(conn, ARCHIVE_TABLE), key, operating_day=operating_day)
        if event is not None:
            return Match(location=ARCHIVE_TABLE, table=ARCHIVE_TABLE, event=event)

    return None


def has_open_event(conn: sqlite3.Connection, current: PartitionRef, key: MatchKey,
                   operating_day: str = None, include_archive: bool = False) -> bool:
    """True when any partition (and optionally today's archive) holds an open event for the key."""
    return find_open_event(conn, current, key, operating_day=operating_day,
                           include_archive=include_archive) is not None
