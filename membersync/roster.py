"""Build the canonical-email lookup over roster records."""

from __future__ import annotations

import logging
from typing import Iterable

from .email_utils import canonicalize_email
from .models import IndexEntry, MemberRecord

log = logging.getLogger(__name__)


def records_from_rows(rows: Iterable[dict]) -> list[MemberRecord]:
    """Convert raw roster rows into MemberRecords.

    Rows without an email are skipped.  A row whose expiry cannot be parsed
    is kept with an expiry of 0 so it is treated as expired.
    """
    records: list[MemberRecord] = []
    for row in rows:
        if not str(row.get("email") or "").strip():
            continue
        try:
            record = MemberRecord.from_row(row)
        except (TypeError, ValueError):
            log.warning(
                "Unparseable expiry %r for %s, treating as expired",
                row.get("expiry"), row.get("email"),
            )
            record = MemberRecord.from_row({**row, "expiry": 0})
        records.append(record)
    return records


def build_membership_index(
    records: Iterable[MemberRecord], now: float,
) -> dict[str, IndexEntry]:
    """Build a canonical-email → IndexEntry lookup.

    ``expired`` is ``expiry < now``.  When two records share a canonical
    email the later one wins.
    """
    index: dict[str, IndexEntry] = {}
    for record in records:
        key = canonicalize_email(record.email)
        if key in index:
            log.warning(
                "Duplicate roster entry for %s, using the later row", record.email,
            )
        index[key] = IndexEntry(
            email=record.email,
            expired=record.expiry < now,
            first_name=record.first_name,
            last_name=record.last_name,
        )
    return index


def get_display_name(entry: IndexEntry | MemberRecord | None) -> str:
    """Name used to greet a member in notification emails.

    Without a last name the first name column often holds the full name,
    so only its first word is used.
    """
    if entry is None:
        return ""
    if not entry.last_name:
        return entry.first_name.split(" ")[0]
    return entry.first_name
