"""Sync orchestration: roster + group → plan → applied changes."""

from __future__ import annotations

import logging
import time

from .applier import GroupProvider, NotificationSender, apply_plan
from .config import SyncConfig
from .models import ApplySummary, SyncMode
from .reconcile import build_group_snapshot, reconcile
from .roster import build_membership_index, records_from_rows

log = logging.getLogger(__name__)


class SyncFailedError(Exception):
    """Raised after a full batch when one or more changes failed."""

    def __init__(self, summary: ApplySummary) -> None:
        super().__init__(
            f"{summary.num_failed} of {summary.num_attempted} group changes failed"
        )
        self.summary = summary


def plan_changes(roster, directory, mode: SyncMode, now: float | None = None):
    """Read both sides and return the reconciliation plan.

    Upstream read failures propagate: nothing is reconciled from partial
    input.
    """
    now = time.time() if now is None else now

    log.info("Reading roster...")
    records = records_from_rows(roster.read_rows())

    log.info("Getting mailing list members...")
    members = directory.list_members()

    log.info("Calculating changes...")
    index = build_membership_index(records, now)
    snapshot = build_group_snapshot(members)
    return reconcile(snapshot, index, mode)


def send_summary_email(
    cfg: SyncConfig, summary: ApplySummary, notifier: NotificationSender, mode: SyncMode,
) -> bool:
    """Email the admin a count of what changed; skipped when nothing did."""
    if not summary.has_changes:
        return False
    log.info(
        "Summary: %d added, %d removed, %d failed",
        summary.num_added, summary.num_removed, summary.num_failed,
    )
    if not cfg.summary_email_template_id:
        return False
    data = {
        **summary.to_dict(),
        "mode": mode.value,
        "failed": [o.planned.email for o in summary.failures],
    }
    try:
        return notifier.send(cfg.admin_email, cfg.summary_email_template_id, data)
    except Exception:
        log.exception("Summary email failed")
        return False


def run_sync(
    cfg: SyncConfig,
    mode: SyncMode,
    *,
    roster,
    directory: GroupProvider,
    notifier: NotificationSender | None = None,
    now: float | None = None,
    dry_run: bool = False,
) -> ApplySummary:
    """Run one full synchronization.

    Raises SyncFailedError once every change has been attempted if any of
    them failed.
    """
    plan = plan_changes(roster, directory, mode, now)

    log.info("Applying changes...")
    summary = apply_plan(
        plan,
        directory,
        notifier,
        add_template_id=cfg.add_email_template_id,
        remove_template_id=cfg.remove_email_template_id,
        dry_run=dry_run,
    )

    if notifier is not None and not dry_run:
        log.info("Sending summary email...")
        send_summary_email(cfg, summary, notifier, mode)

    if summary.num_failed:
        raise SyncFailedError(summary)

    log.info("Done.")
    return summary


# ---------------------------------------------------------------------------
# Deployed variants
# ---------------------------------------------------------------------------

def build_clients(cfg: SyncConfig):
    """Construct the roster, directory and notifier clients for *cfg*."""
    from .auth import get_directory_credentials, get_sheets_credentials
    from .directory_client import GroupDirectory
    from .notifier import Notifier
    from .sheets_client import RosterSheet

    log.info("Loading dependencies...")
    roster = RosterSheet.from_credentials(
        get_sheets_credentials(cfg), cfg.database_spreadsheet_id,
    )
    directory = GroupDirectory.from_credentials(
        get_directory_credentials(cfg), cfg.google_group_email,
    )
    notifier = Notifier(cfg.send_grid_api_key)
    return roster, directory, notifier


def _run_variant(
    cfg: SyncConfig, mode: SyncMode, dry_run: bool, now: float | None,
) -> ApplySummary:
    roster, directory, notifier = build_clients(cfg)
    try:
        return run_sync(
            cfg, mode,
            roster=roster, directory=directory, notifier=notifier,
            now=now, dry_run=dry_run,
        )
    finally:
        notifier.close()


def synchronize_mailing_list(
    cfg: SyncConfig, *, dry_run: bool = False, now: float | None = None,
) -> ApplySummary:
    """Add current members to the group and remove everyone else."""
    return _run_variant(cfg, SyncMode.FULL, dry_run, now)


def remove_expired_members(
    cfg: SyncConfig, *, dry_run: bool = False, now: float | None = None,
) -> ApplySummary:
    """Remove expired or unknown members from the group; never adds."""
    return _run_variant(cfg, SyncMode.REMOVE_EXPIRED, dry_run, now)
