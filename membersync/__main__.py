"""CLI entry point for the mailing-list jobs.

Usage:
    python -m membersync                     # default: full sync
    python -m membersync sync                # add current members, remove the rest
    python -m membersync remove-expired      # only remove expired/unknown members
    python -m membersync plan                # show what a sync would change
    python -m membersync serve               # run the HTTP functions locally
"""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from .config import ConfigError, SyncConfig, load_config
from .models import SyncMode

console = Console()


def _load(args: argparse.Namespace) -> SyncConfig:
    try:
        return load_config(args.environment)
    except ConfigError as exc:
        console.print(f"\n[red]Configuration error:[/red] {exc}")
        sys.exit(2)


# ---------------------------------------------------------------------------
# Subcommands: sync / remove-expired
# ---------------------------------------------------------------------------

def _run_job(args: argparse.Namespace, mode: SyncMode) -> None:
    from .display import display_summary
    from .sync import SyncFailedError, remove_expired_members, synchronize_mailing_list

    cfg = _load(args)
    job = synchronize_mailing_list if mode == SyncMode.FULL else remove_expired_members

    if args.dry_run:
        console.print("[yellow]Dry run: the group will not be changed.[/yellow]")

    try:
        summary = job(cfg, dry_run=args.dry_run)
    except SyncFailedError as exc:
        display_summary(exc.summary)
        console.print(f"\n[red]{exc}[/red]")
        sys.exit(1)

    display_summary(summary)


def cmd_sync(args: argparse.Namespace) -> None:
    """Full synchronization of the group with the roster."""
    _run_job(args, SyncMode.FULL)


def cmd_remove_expired(args: argparse.Namespace) -> None:
    """Remove expired members only."""
    _run_job(args, SyncMode.REMOVE_EXPIRED)


# ---------------------------------------------------------------------------
# Subcommand: plan
# ---------------------------------------------------------------------------

def cmd_plan(args: argparse.Namespace) -> None:
    """Print the reconciliation plan without applying it."""
    from .display import display_plan
    from .sync import build_clients, plan_changes

    cfg = _load(args)
    mode = SyncMode.REMOVE_EXPIRED if args.expired_only else SyncMode.FULL
    roster, directory, notifier = build_clients(cfg)
    notifier.close()

    plan = plan_changes(roster, directory, mode)
    display_plan(plan, show_all=args.all)


# ---------------------------------------------------------------------------
# Subcommand: serve
# ---------------------------------------------------------------------------

def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP functions with uvicorn."""
    import uvicorn

    from .web.app import create_app

    console.print(f"\n[bold]Serving on http://{args.host}:{args.port}[/bold]\n")
    uvicorn.run(create_app(), host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m membersync",
        description="Keep the membership Google Group in sync with the roster",
    )
    parser.add_argument(
        "--environment",
        choices=["production", "development", "test"],
        help="Deployment environment (default: $ENVIRONMENT)",
    )
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    sy = sub.add_parser("sync", help="Add current members, remove everyone else (default)")
    sy.add_argument("--dry-run", action="store_true", help="Do not change the group")

    rx = sub.add_parser("remove-expired", help="Remove expired or unknown members")
    rx.add_argument("--dry-run", action="store_true", help="Do not change the group")

    pl = sub.add_parser("plan", help="Show the changes a sync would make")
    pl.add_argument("--expired-only", action="store_true", help="Plan the remover instead")
    pl.add_argument("--all", action="store_true", help="Include unchanged members")

    sv = sub.add_parser("serve", help="Run the HTTP functions locally")
    sv.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )

    commands = {
        "sync": cmd_sync,
        "remove-expired": cmd_remove_expired,
        "plan": cmd_plan,
        "serve": cmd_serve,
    }

    # Default to "sync" when no subcommand given
    command = args.command or "sync"
    if not hasattr(args, "dry_run"):
        args.dry_run = False
    commands[command](args)


if __name__ == "__main__":
    main()
