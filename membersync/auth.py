"""Service-account credentials for the Google APIs."""

from __future__ import annotations

import logging

from google.oauth2 import service_account

from . import config
from .config import SyncConfig

log = logging.getLogger(__name__)


def _normalize_key(private_key: str) -> str:
    # Keys copied into env vars or JSON often carry literal "\n" sequences
    return private_key.replace("\\n", "\n")


def service_account_credentials(
    email: str,
    private_key: str,
    scopes: list[str],
    subject: str | None = None,
) -> service_account.Credentials:
    """Build credentials from a service account email and PEM key.

    *subject* makes the account impersonate a real user, which the Admin
    SDK requires (domain-wide delegation).
    """
    info = {
        "type": "service_account",
        "client_email": email,
        "private_key": _normalize_key(private_key),
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    creds = service_account.Credentials.from_service_account_info(info, scopes=scopes)
    if subject:
        creds = creds.with_subject(subject)
    return creds


def get_directory_credentials(cfg: SyncConfig) -> service_account.Credentials:
    """Credentials allowed to read, add and remove Google Group members.

    Impersonates the workspace admin; application default credentials
    cannot carry a subject, so explicit keys are required here.
    """
    log.debug("Building Directory API credentials for %s", cfg.directory_api_service_account_email)
    return service_account_credentials(
        cfg.directory_api_service_account_email,
        cfg.directory_api_service_account_key,
        config.DIRECTORY_SCOPES,
        subject=cfg.admin_email,
    )


def get_sheets_credentials(cfg: SyncConfig) -> service_account.Credentials:
    """Credentials for the roster spreadsheet."""
    return service_account_credentials(
        cfg.google_sheets_service_account_email,
        cfg.google_sheets_service_account_key,
        config.SHEETS_SCOPES,
    )
