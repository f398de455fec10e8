"""Data models shared by the roster, group and reconciliation code."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum


class SyncMode(Enum):
    """Which of the two deployed synchronizers is running."""

    FULL = "full"
    REMOVE_EXPIRED = "remove_expired"


class Action(Enum):
    ADD = "add"
    REMOVE = "remove"
    DO_NOTHING = "do_nothing"
    EXPIRED = "expired"
    NOT_EXPIRED = "not_expired"


# Actions that change the group when applied.
ACTIONABLE = frozenset({Action.ADD, Action.REMOVE, Action.EXPIRED})


@dataclass
class MemberRecord:
    """A row from the roster spreadsheet."""

    email: str
    expiry: float
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_row(cls, row: dict) -> MemberRecord:
        """Construct from a roster row dict.

        Accepts both ``first_name``/``last_name`` and ``firstName``/``lastName``
        column names.  Raises ValueError when ``expiry`` is not a finite
        number.
        """
        first = row.get("first_name")
        if first is None:
            first = row.get("firstName")
        last = row.get("last_name")
        if last is None:
            last = row.get("lastName")
        raw_expiry = row.get("expiry")
        expiry = float(raw_expiry) if raw_expiry not in (None, "") else 0.0
        if not math.isfinite(expiry):
            raise ValueError(f"expiry is not a finite number: {raw_expiry!r}")
        return cls(
            email=str(row.get("email") or "").strip(),
            expiry=expiry,
            first_name=str(first or "").strip(),
            last_name=str(last or "").strip(),
        )


@dataclass
class IndexEntry:
    """MembershipIndex value for one canonical email."""

    email: str
    expired: bool
    first_name: str = ""
    last_name: str = ""


@dataclass
class GroupMember:
    """A member of the Google Group as reported by the Directory API."""

    member_id: str
    email: str

    @classmethod
    def from_api(cls, member: dict) -> GroupMember:
        email = member.get("email", "")
        return cls(member_id=member.get("id") or email, email=email)


@dataclass
class PlannedAction:
    """One reconciliation decision for a canonical email."""

    key: str
    action: Action
    email: str = ""
    member_id: str = ""
    name: str = ""

    @property
    def is_actionable(self) -> bool:
        return self.action in ACTIONABLE


@dataclass
class ItemOutcome:
    """Result of applying a single PlannedAction."""

    planned: PlannedAction
    success: bool
    error: str = ""


@dataclass
class ApplySummary:
    """Aggregate result of applying a reconciliation plan."""

    num_added: int = 0
    num_removed: int = 0
    num_failed: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def num_attempted(self) -> int:
        return len(self.outcomes)

    @property
    def has_changes(self) -> bool:
        return bool(self.num_added or self.num_removed or self.num_failed)

    @property
    def failures(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if not o.success]

    def record(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)
        if not outcome.success:
            self.num_failed += 1
        elif outcome.planned.action == Action.ADD:
            self.num_added += 1
        else:
            self.num_removed += 1

    def to_dict(self) -> dict:
        return {
            "num_attempted": self.num_attempted,
            "num_added": self.num_added,
            "num_removed": self.num_removed,
            "num_failed": self.num_failed,
        }
