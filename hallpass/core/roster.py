"""
Roster providers - the per-day list of (member_id, member_name) pairs.

The core only reads rosters; it never writes them.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from .config import get_roster_path
from .errors import MemberNotFound, NoActivePartitionContext
from ..util.logging import logger

RosterEntry = Tuple[str, str]  # (member_id, member_name)


class RosterProvider(Protocol):
    def lookup(self, period_context: Optional[str] = None) -> List[RosterEntry]:
        ...


class StaticRosterProvider:
    """Roster held in memory, keyed by day name."""

    def __init__(self, days: Dict[str, List[RosterEntry]], active: Optional[str] = None):
        self.days = {
            day: [(str(member_id).strip(), member_name) for member_id, member_name in entries]
            for day, entries in days.items()
        }
        self.active = active

    def lookup(self, period_context: Optional[str] = None) -> List[RosterEntry]:
        day = period_context or self.active or next(iter(self.days), None)
        if day is None or day not in self.days:
            raise NoActivePartitionContext()
        return list(self.days[day])


class JsonRosterProvider:
    """Roster read from a JSON file on every lookup.

    Expected layout::

        {"active": "A-Day", "days": {"A-Day": [{"id": "1001", "name": "Doe, Jane"}]}}

    When "active" is missing the first listed day is used.
    """

    def __init__(self, path: str = None):
        self.path = Path(path or get_roster_path())

    def _load(self) -> dict:
        if not self.path.exists():
            raise NoActivePartitionContext()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Roster could not be read from {self.path}: {e}")
            raise NoActivePartitionContext() from e

    def lookup(self, period_context: Optional[str] = None) -> List[RosterEntry]:
        data = self._load()
        days = data.get("days") or {}
        day = period_context or data.get("active") or next(iter(days), None)
        if day is None or day not in days:
            raise NoActivePartitionContext()

        return [(str(entry.get("id", "")).strip(), entry.get("name", "")) for entry in days[day]]


def find_member(roster: List[RosterEntry], member_id: str) -> str:
    """Linear scan for a member id; returns the member name.

    Raises:
        MemberNotFound: if the id is not on the roster.
    """
    wanted = member_id.strip()
    for mid, name in roster:
        if mid == wanted:
            return name
    raise MemberNotFound(member_id)
