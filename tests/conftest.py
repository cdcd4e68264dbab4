"""
Shared fixtures: a throwaway SQLite file per test, a fixed roster and a settable clock.
"""

import logging
from datetime import datetime

import pytest

from hallpass.core.db import get_db, init_db
from hallpass.core.identity import IdentityResolver
from hallpass.core.roster import StaticRosterProvider
from hallpass.core.service import PassLogService

logging.getLogger("hallpass").setLevel(logging.INFO)

STAFF_EMAIL = "danny.garcia@example.org"
STAFF_NAME = "Mr. Garcia"


class FakeClock:
    """Settable clock for driving partition selection and timestamps."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, hour: int, minute: int = 0, second: int = 0):
        self.now = self.now.replace(hour=hour, minute=minute, second=second)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Temporary database with both partitions initialised."""
    path = str(tmp_path / "hallpass_test.db")
    monkeypatch.setenv("DB_PATH", path)
    init_db(path)
    return path


@pytest.fixture
def conn(db_path):
    with get_db(db_path) as connection:
        yield connection


@pytest.fixture
def roster():
    return StaticRosterProvider({
        "A-Day": [("1001", "Doe, Jane"), ("1002", "Smith, Sam"), ("1003", "Lee, Kim")],
        "B-Day": [("2001", "Park, Ana")],
    }, active="A-Day")


@pytest.fixture
def identities():
    return IdentityResolver({
        "Garcia": {"email": STAFF_EMAIL, "salutation": "Mr. "},
        "Gonzales": {"email": "zina.gonzales@example.org", "salutation": "Dr."},
    })


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 6, 9, 0, 0))


@pytest.fixture
def service(db_path, roster, identities, clock):
    return PassLogService(roster=roster, identities=identities, db_path=db_path, clock=clock)


def out(member_id="1001", category="G", **extra):
    return {"memberId": member_id, "category": category, "action": "Out", **extra}


def back(member_id="1001", category="G", **extra):
    return {"memberId": member_id, "category": category, "action": "Back", **extra}
