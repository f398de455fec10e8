"""Apply a reconciliation plan to the Google Group and notify members."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .directory_client import ChangeResult
from .models import Action, ApplySummary, ItemOutcome, PlannedAction

log = logging.getLogger(__name__)


class GroupProvider(Protocol):
    def add_member(self, email: str) -> ChangeResult: ...

    def remove_member(self, member_key: str) -> ChangeResult: ...


class NotificationSender(Protocol):
    def send(self, to: str, template_id: str, data: dict | None = None) -> bool: ...


def _apply_one(item: PlannedAction, directory: GroupProvider) -> ChangeResult:
    if item.action == Action.ADD:
        log.info("Adding %s to group...", item.email)
        return directory.add_member(item.email)
    log.info("Removing %s from group...", item.email)
    return directory.remove_member(item.member_id or item.email)


def apply_plan(
    plan: Iterable[PlannedAction],
    directory: GroupProvider,
    notifier: NotificationSender | None = None,
    *,
    add_template_id: str = "",
    remove_template_id: str = "",
    dry_run: bool = False,
) -> ApplySummary:
    """Execute the actionable items of *plan* one at a time, in order.

    Each failed add or remove is recorded in the returned summary and the
    run moves on to the next item.  Nothing already applied is rolled back.
    The member is emailed only after a successful change.
    """
    summary = ApplySummary()

    for item in plan:
        if not item.is_actionable:
            continue

        if dry_run:
            log.info("[dry run] Would %s %s", item.action.value, item.email)
            summary.record(ItemOutcome(planned=item, success=True))
            continue

        try:
            result = _apply_one(item, directory)
        except Exception as exc:
            log.exception("Unexpected error applying %s to %s", item.action.value, item.email)
            summary.record(ItemOutcome(planned=item, success=False, error=str(exc)))
            continue

        if not result.ok:
            summary.record(ItemOutcome(planned=item, success=False, error=result.detail))
            continue

        summary.record(ItemOutcome(planned=item, success=True))

        if notifier is not None:
            template_id = add_template_id if item.action == Action.ADD else remove_template_id
            try:
                notifier.send(item.email, template_id, {"email": item.email, "name": item.name})
            except Exception:
                log.exception("Notification to %s failed", item.email)

    log.info(
        "Applied %d changes: %d added, %d removed, %d failed",
        summary.num_attempted, summary.num_added, summary.num_removed, summary.num_failed,
    )
    return summary
