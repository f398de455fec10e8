"""Configuration loading from environment variables, .env and Secret Manager."""

from __future__ import annotations

import logging
import os
from dataclasses import MISSING, dataclass, fields
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

log = logging.getLogger(__name__)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


class ConfigError(Exception):
    """Raised when the deployment environment or a required setting is invalid."""


# Deployment environment: production, development or test
ENVIRONMENT = _env("ENVIRONMENT", "development")

# Secret Manager resource holding the JSON config, per environment.
# "test" has no secret and reads MEMBERSYNC_* variables instead.
SECRET_IDS = {
    "production": _env("MEMBERSYNC_PRODUCTION_SECRET_ID"),
    "development": _env(
        "MEMBERSYNC_DEVELOPMENT_SECRET_ID",
        "projects/620400297419/secrets/mailing-list-synchronizer-config/versions/latest",
    ),
    "test": None,
}

# Google API scopes
DIRECTORY_SCOPES = ["https://www.googleapis.com/auth/admin.directory.group.member"]
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
SECRET_MANAGER_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

# Directory API maximum page size for members.list
GROUP_PAGE_SIZE = 200

# Roster tab (data lives in the second tab)
ROSTER_SHEET_INDEX = int(_env("MEMBERSYNC_ROSTER_SHEET_INDEX", "1"))

# Email
NO_REPLY_EMAIL = _env("MEMBERSYNC_NO_REPLY_EMAIL", "no-reply@utoc.ca")
SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
HTTP_TIMEOUT = float(_env("MEMBERSYNC_HTTP_TIMEOUT", "30"))

# Sign-up backend
SUCCESS_URL = _env("MEMBERSYNC_SUCCESS_URL", "https://utoc.ca/membership-success")
CONTACT_MESSAGE = "Oops! Something went wrong. Please contact UTOC."

# Shared bearer token for the /sync and /remove-expired triggers
TRIGGER_AUTH_ENABLED = _env("MEMBERSYNC_TRIGGER_AUTH_ENABLED", "true").lower() in ("true", "1", "yes")
TRIGGER_TOKEN = _env("MEMBERSYNC_TRIGGER_TOKEN")


@dataclass(frozen=True)
class SyncConfig:
    """Resolved settings for a single invocation.

    Field names map to camelCase keys in the Secret Manager JSON payload
    (``google_group_email`` ← ``googleGroupEmail``) and to ``MEMBERSYNC_*``
    environment variables in the test environment.
    """

    google_group_email: str
    admin_email: str
    database_spreadsheet_id: str
    directory_api_service_account_email: str
    directory_api_service_account_key: str
    google_sheets_service_account_email: str
    google_sheets_service_account_key: str
    send_grid_api_key: str = ""
    add_email_template_id: str = ""
    remove_email_template_id: str = "d-b23a2ee67d8f4f78bda907112024537a"
    welcome_email_template_id: str = ""
    summary_email_template_id: str = ""
    pay_pal_client_id: str = ""
    pay_pal_client_secret: str = ""
    pay_pal_live: bool = False
    environment: str = "development"


_REQUIRED = [f.name for f in fields(SyncConfig) if f.default is MISSING]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def get_secret_id(environment: str) -> str | None:
    """Return the Secret Manager resource name for *environment*."""
    if environment not in SECRET_IDS:
        raise ConfigError(f"Unknown environment {environment!r}")
    secret_id = SECRET_IDS[environment]
    if environment != "test" and not secret_id:
        raise ConfigError(f"No secret configured for environment {environment!r}")
    return secret_id


def config_from_mapping(values: dict, environment: str) -> SyncConfig:
    """Build a SyncConfig from camelCase or snake_case keys.

    Raises ConfigError when a required key is missing or empty.
    """
    kwargs: dict = {"environment": environment}
    for f in fields(SyncConfig):
        if f.name == "environment":
            continue
        value = values.get(_camel(f.name), values.get(f.name))
        if value is None or value == "":
            continue
        if f.name == "pay_pal_live":
            value = str(value).lower() in ("true", "1", "yes")
        kwargs[f.name] = value

    missing = [name for name in _REQUIRED if name not in kwargs]
    if missing:
        raise ConfigError(
            "Missing required configuration: " + ", ".join(_camel(m) for m in missing)
        )
    return SyncConfig(**kwargs)


def _values_from_env() -> dict:
    prefix = "MEMBERSYNC_"
    return {
        f.name: os.environ[prefix + f.name.upper()]
        for f in fields(SyncConfig)
        if prefix + f.name.upper() in os.environ
    }


def load_config(
    environment: str | None = None,
    fetch_secret: Callable[[str], dict] | None = None,
) -> SyncConfig:
    """Resolve the configuration for this invocation.

    *fetch_secret* takes a secret resource name and returns the decoded JSON
    payload; it defaults to the Secret Manager client.
    """
    environment = environment or ENVIRONMENT
    secret_id = get_secret_id(environment)

    if secret_id is None:
        log.info("Loading configuration from environment (%s)", environment)
        return config_from_mapping(_values_from_env(), environment)

    if fetch_secret is None:
        from .secret_store import fetch_secret_json
        fetch_secret = fetch_secret_json

    log.info("Loading configuration from %s", secret_id)
    return config_from_mapping(fetch_secret(secret_id), environment)
