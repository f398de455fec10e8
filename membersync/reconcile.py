"""Reconcile Google Group membership against the roster index."""

from __future__ import annotations

import logging
from typing import Iterable

from .email_utils import canonicalize_email
from .models import Action, GroupMember, IndexEntry, PlannedAction, SyncMode
from .roster import get_display_name

log = logging.getLogger(__name__)


def build_group_snapshot(members: Iterable[GroupMember]) -> dict[str, GroupMember]:
    """Build a canonical-email → GroupMember lookup.

    The input is the fully materialized member list; pagination happens in
    the directory client.  When the group reports the same canonical email
    twice the first entry is kept.
    """
    snapshot: dict[str, GroupMember] = {}
    for member in members:
        key = canonicalize_email(member.email)
        if key in snapshot:
            log.warning(
                "Group lists %s and %s as the same address, keeping the first",
                snapshot[key].email, member.email,
            )
            continue
        snapshot[key] = member
    return snapshot


def _classify_full(
    snapshot: dict[str, GroupMember], index: dict[str, IndexEntry],
) -> dict[str, Action]:
    # Anyone in the group starts out as "not in the roster, remove"
    actions = {key: Action.REMOVE for key in snapshot}

    for key, entry in index.items():
        in_group = key in snapshot
        if entry.expired:
            actions[key] = Action.REMOVE if in_group else Action.DO_NOTHING
        else:
            actions[key] = Action.DO_NOTHING if in_group else Action.ADD

    return actions


def _classify_expired(
    snapshot: dict[str, GroupMember], index: dict[str, IndexEntry],
) -> dict[str, Action]:
    actions: dict[str, Action] = {}
    for key in snapshot:
        entry = index.get(key)
        if entry is None or entry.expired:
            actions[key] = Action.EXPIRED
        else:
            actions[key] = Action.NOT_EXPIRED
    return actions


def reconcile(
    snapshot: dict[str, GroupMember],
    index: dict[str, IndexEntry],
    mode: SyncMode = SyncMode.FULL,
) -> list[PlannedAction]:
    """Classify every observed canonical email.

    In ``FULL`` mode each key gets ADD, REMOVE or DO_NOTHING.  In
    ``REMOVE_EXPIRED`` mode only group members are classified, as EXPIRED
    (absent from the roster or past expiry) or NOT_EXPIRED.

    Returns one PlannedAction per key, sorted by key.
    """
    if mode == SyncMode.FULL:
        actions = _classify_full(snapshot, index)
    else:
        actions = _classify_expired(snapshot, index)

    plan: list[PlannedAction] = []
    for key in sorted(actions):
        entry = index.get(key)
        member = snapshot.get(key)
        plan.append(PlannedAction(
            key=key,
            action=actions[key],
            email=entry.email if entry else (member.email if member else key),
            member_id=member.member_id if member else "",
            name=get_display_name(entry),
        ))

    counts: dict[Action, int] = {}
    for item in plan:
        counts[item.action] = counts.get(item.action, 0) + 1
    log.info(
        "Reconciled %d addresses (%s): %s",
        len(plan), mode.value,
        ", ".join(f"{a.value}={n}" for a, n in sorted(counts.items(), key=lambda c: c[0].value)),
    )
    return plan


def actionable(plan: Iterable[PlannedAction]) -> list[PlannedAction]:
    """Only the actions that change group membership."""
    return [item for item in plan if item.is_actionable]
