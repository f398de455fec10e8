"""Transactional email through SendGrid dynamic templates."""

from __future__ import annotations

import logging

import httpx

from . import config

log = logging.getLogger(__name__)


class Notifier:
    """Best-effort template email sender.

    Failures are logged and reported as ``False``; nothing here raises,
    so a broken mail provider never blocks group changes.
    """

    def __init__(
        self,
        api_key: str,
        sender: str = config.NO_REPLY_EMAIL,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.client = client or httpx.Client(timeout=config.HTTP_TIMEOUT)

    def send(self, to: str, template_id: str, data: dict | None = None) -> bool:
        """Send template *template_id* to *to* with *data* as template variables."""
        if not template_id:
            log.debug("No template configured, not emailing %s", to)
            return False
        if not self.api_key:
            log.warning("SendGrid API key not configured, not emailing %s", to)
            return False

        message = {
            "personalizations": [{
                "to": [{"email": to}],
                "dynamic_template_data": data or {},
            }],
            "from": {"email": self.sender},
            "template_id": template_id,
        }
        try:
            resp = self.client.post(
                config.SENDGRID_API_URL,
                json=message,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.error("Failed to send email %s to %s: %s", template_id, to, exc)
            return False

        log.info("Sent email %s to %s", template_id, to)
        return True

    def close(self) -> None:
        self.client.close()
