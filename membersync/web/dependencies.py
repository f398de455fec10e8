"""FastAPI dependencies: per-request configuration, API clients and trigger auth."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from .. import config
from ..config import SyncConfig, load_config
from ..directory_client import GroupDirectory
from ..membership import SignupError
from ..notifier import Notifier
from ..paypal_client import PayPalClient
from ..sheets_client import RosterSheet

log = logging.getLogger(__name__)


def get_sync_config() -> SyncConfig:
    """Resolve configuration fresh for every request."""
    return load_config()


def require_trigger_token(authorization: str | None = Header(default=None)) -> None:
    """Guard the sync triggers with a shared bearer token.

    Disabled with ``MEMBERSYNC_TRIGGER_AUTH_ENABLED=false``.
    """
    if not config.TRIGGER_AUTH_ENABLED:
        return
    if not config.TRIGGER_TOKEN:
        log.error("Trigger auth is enabled but MEMBERSYNC_TRIGGER_TOKEN is not set")
        raise HTTPException(status_code=503, detail="Trigger token not configured")

    expected = f"Bearer {config.TRIGGER_TOKEN}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing trigger token")


@dataclass
class SignupClients:
    paypal: PayPalClient
    roster: RosterSheet
    directory: GroupDirectory
    notifier: Notifier


def _build_signup_clients(cfg: SyncConfig) -> SignupClients:
    from ..auth import get_directory_credentials, get_sheets_credentials

    roster = RosterSheet.from_credentials(
        get_sheets_credentials(cfg), cfg.database_spreadsheet_id,
    )
    directory = GroupDirectory.from_credentials(
        get_directory_credentials(cfg), cfg.google_group_email,
    )
    return SignupClients(
        paypal=PayPalClient(
            cfg.pay_pal_client_id, cfg.pay_pal_client_secret, live=cfg.pay_pal_live,
        ),
        roster=roster,
        directory=directory,
        notifier=Notifier(cfg.send_grid_api_key),
    )


def get_signup_clients(cfg: SyncConfig = Depends(get_sync_config)):
    """Clients used by the sign-up route; closed when the request ends.

    A client that cannot be built is reported as a SignupError so the form
    still gets the user-facing error page.
    """
    try:
        clients = _build_signup_clients(cfg)
    except Exception as exc:
        log.exception("Could not build the sign-up clients")
        raise SignupError(f"Service unavailable: {exc}", 500) from exc

    try:
        yield clients
    finally:
        clients.paypal.close()
        clients.notifier.close()
