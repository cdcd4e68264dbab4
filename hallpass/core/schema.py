"""
Record types shared by the partition store, matcher and archive migrator.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

# Column layout shared by both working partitions and the archive, in header order.
# The first six are the original layout; later ones are added by schema upgrade.
BASE_COLUMNS = ["member_name", "member_id", "category", "actor_name", "time_out", "time_back"]
UPGRADE_COLUMNS = ["event_date", "period", "notes"]
EVENT_COLUMNS = BASE_COLUMNS + UPGRADE_COLUMNS

ARCHIVE_TABLE = "archive"


class PartitionRef(Enum):
    """One of the two working partitions of an operating day."""

    FIRST_HALF = "AM"
    SECOND_HALF = "PM"

    @property
    def table(self) -> str:
        return f"partition_{self.value.lower()}"

    @property
    def other(self) -> "PartitionRef":
        return PartitionRef.SECOND_HALF if self is PartitionRef.FIRST_HALF else PartitionRef.FIRST_HALF

    @classmethod
    def from_name(cls, name: str) -> "PartitionRef":
        """Resolve a logical partition name (AM/PM), case-insensitive."""
        for ref in cls:
            if ref.value == (name or "").strip().upper():
                return ref
        raise ValueError(f"Unknown partition: {name}")


class Action(Enum):
    OUT = "Out"
    BACK = "Back"


class Outcome(Enum):
    """How a usage request was resolved."""

    RECORDED = "recorded"  # Out appended
    CLOSED = "closed"  # Back closed an open event in a working partition
    RECONCILED = "reconciled"  # Back closed an already archived event
    CONFIRMATION_REQUIRED = "confirmation_required"  # threshold hit, nothing written
    UNMATCHED = "unmatched"  # Back found nothing to close


@dataclass(frozen=True)
class Event:
    """A single check-out/check-in record.

    Attributes:
        member_name: Display name copied from the roster when the event was opened.
        member_id: Roster identifier of the member.
        category: Single-token classifier given at Out time.
        actor_name: Display name of the caller who opened the event.
        time_out: HH:MM:SS the event opened. Never revised.
        time_back: HH:MM:SS the event closed; None while open.
        event_date: Operating day (YYYY-MM-DD) the event was opened.
        period: Optional free-text annotation, first write wins.
        notes: Optional free-text annotation, appended to.
        row_id: Storage position within its table; not part of the identity.
    """

    member_name: str
    member_id: str
    category: str
    actor_name: str
    time_out: Optional[str]
    time_back: Optional[str] = None
    event_date: Optional[str] = None
    period: Optional[str] = None
    notes: Optional[str] = None
    row_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return bool(self.time_out) and not self.time_back

    @property
    def match_key(self) -> Tuple[str, str, str, str]:
        """Identity tuple minus time_out, used to find the open event for a Back."""
        return (
            normalize(self.member_name),
            normalize(self.member_id),
            normalize(self.category),
            normalize(self.actor_name),
        )

    def is_blank(self) -> bool:
        """True when every data column is empty."""
        return all(not normalize(getattr(self, column)) for column in EVENT_COLUMNS)

    def as_row(self) -> tuple:
        return tuple(getattr(self, column) for column in EVENT_COLUMNS)

    def with_row_id(self, row_id: int) -> "Event":
        return replace(self, row_id=row_id)

    def to_dict(self) -> dict:
        data = {column: getattr(self, column) for column in EVENT_COLUMNS}
        data["row_id"] = self.row_id
        return data

    @classmethod
    def from_row(cls, row) -> "Event":
        """Build from a (rowid, *EVENT_COLUMNS) database row."""
        row_id, *values = row
        return cls(**dict(zip(EVENT_COLUMNS, values)), row_id=row_id)


def normalize(value) -> str:
    return "" if value is None else str(value).strip()


def match_key_for(member_name: str, member_id: str, category: str, actor_name: str) -> Tuple[str, str, str, str]:
    return (normalize(member_name), normalize(member_id), normalize(category), normalize(actor_name))
