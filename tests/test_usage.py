"""
Usage counter and threshold gate.
"""

import pytest

from hallpass.core.db import transaction
from hallpass.core.partitions import append_event, close_event
from hallpass.core.schema import Event, PartitionRef
from hallpass.core.usage import ThresholdDecision, count_trips, evaluate_threshold

AM = PartitionRef.FIRST_HALF


def add(conn, time_out, member_id="1001", member_name="Doe, Jane", event_date="2025-01-06", category="G"):
    with transaction(conn):
        return append_event(conn, AM, Event(
            member_name=member_name,
            member_id=member_id,
            category=category,
            actor_name="Mr. Garcia",
            time_out=time_out,
            event_date=event_date,
        ))


def test_unknown_member_counts_zero(conn):
    assert count_trips(conn, AM, "Nobody", "9999") == 0


def test_open_and_closed_trips_both_count(conn):
    first = add(conn, "09:00:00")
    add(conn, "10:00:00")
    with transaction(conn):
        close_event(conn, AM, first, "09:05:00")

    assert count_trips(conn, AM, "Doe, Jane", "1001") == 2


def test_count_spans_categories_and_ignores_other_members(conn):
    add(conn, "09:00:00", category="G")
    add(conn, "09:30:00", category="B")
    add(conn, "09:40:00", member_id="1002", member_name="Smith, Sam")

    assert count_trips(conn, AM, "Doe, Jane", "1001") == 2
    assert count_trips(conn, AM, "Smith, Sam", "1002") == 1


def test_count_requires_name_and_id_to_match(conn):
    add(conn, "09:00:00")
    assert count_trips(conn, AM, "Doe, John", "1001") == 0


def test_count_filters_by_operating_day(conn):
    add(conn, "09:00:00", event_date="2025-01-03")
    add(conn, "09:00:00", event_date="2025-01-06")

    assert count_trips(conn, AM, "Doe, Jane", "1001") == 2
    assert count_trips(conn, AM, "Doe, Jane", "1001", operating_day="2025-01-06") == 1


def test_rows_without_date_count_for_any_day(conn):
    add(conn, "09:00:00", event_date=None)
    assert count_trips(conn, AM, "Doe, Jane", "1001", operating_day="2025-01-06") == 1


@pytest.mark.parametrize("count_before, force, expected", [
    (0, False, ThresholdDecision(allow=True, requires_confirmation=False)),
    (1, False, ThresholdDecision(allow=True, requires_confirmation=False)),
    (2, False, ThresholdDecision(allow=False, requires_confirmation=True)),
    (5, False, ThresholdDecision(allow=False, requires_confirmation=True)),
    (2, True, ThresholdDecision(allow=True, requires_confirmation=False)),
    (9, True, ThresholdDecision(allow=True, requires_confirmation=False)),
])
def test_evaluate_threshold(count_before, force, expected):
    assert evaluate_threshold(count_before, force, threshold=2) == expected


def test_threshold_from_environment(monkeypatch):
    monkeypatch.setenv("USAGE_THRESHOLD", "3")
    assert evaluate_threshold(2, False).allow is True
    assert evaluate_threshold(3, False).requires_confirmation is True
