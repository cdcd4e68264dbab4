"""
Usage counter and threshold gate for Out requests.
"""

import sqlite3
from dataclasses import dataclass

from .config import get_usage_threshold
from .partitions import Target, list_events
from .schema import normalize


@dataclass(frozen=True)
class ThresholdDecision:
    allow: bool
    requires_confirmation: bool


def count_trips(conn: sqlite3.Connection, target: Target, member_name: str, member_id: str,
                operating_day: str = None) -> int:
    """Count a member's trips in a partition, open ones included.

    Args:
        operating_day: When given, only rows opened on that day count.
    """
    name, mid = normalize(member_name), normalize(member_id)
    count = 0
    for event in list_events(conn, target):
        if normalize(event.member_name) != name or normalize(event.member_id) != mid:
            continue
        if not event.time_out:
            continue
        if operating_day is not None and event.event_date and event.event_date != operating_day:
            continue
        count += 1
    return count


def evaluate_threshold(count_before: int, force_override: bool, threshold: int = None) -> ThresholdDecision:
    """Decide whether a new Out may be recorded without confirmation."""
    limit = get_usage_threshold() if threshold is None else threshold
    if count_before < limit:
        return ThresholdDecision(allow=True, requires_confirmation=False)
    if force_override:
        return ThresholdDecision(allow=True, requires_confirmation=False)
    return ThresholdDecision(allow=False, requires_confirmation=True)
