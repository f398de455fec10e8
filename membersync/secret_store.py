"""Google Secret Manager access for the JSON configuration payload."""

from __future__ import annotations

import base64
import json
import logging

from googleapiclient.discovery import build

from .config import ConfigError
from .google_api import execute

log = logging.getLogger(__name__)


def fetch_secret(secret_id: str, creds=None) -> str:
    """Return the decoded payload of a secret version.

    *secret_id* is a full resource name such as
    ``projects/P/secrets/S/versions/latest``.  Without *creds* the
    application default credentials of the runtime are used.
    """
    service = build("secretmanager", "v1", credentials=creds, cache_discovery=False)
    result = execute(
        service.projects().secrets().versions().access(name=secret_id)
    )
    data = result.get("payload", {}).get("data", "")
    return base64.b64decode(data).decode("utf-8")


def fetch_secret_json(secret_id: str, creds=None) -> dict:
    """Fetch a secret whose payload is a JSON object."""
    raw = fetch_secret(secret_id, creds)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Secret {secret_id} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Secret {secret_id} must hold a JSON object")
    log.info("Loaded %d configuration keys from Secret Manager", len(payload))
    return payload
