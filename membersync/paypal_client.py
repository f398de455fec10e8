"""PayPal Orders v2 REST client for verifying and capturing payments."""

from __future__ import annotations

import logging

import httpx

from . import config

log = logging.getLogger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
LIVE_URL = "https://api-m.paypal.com"


class PayPalClient:
    """Minimal client authenticated with the OAuth client-credentials grant."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        live: bool = False,
        client: httpx.Client | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = LIVE_URL if live else SANDBOX_URL
        self.client = client or httpx.Client(timeout=config.HTTP_TIMEOUT)
        self._token: str | None = None

    def _access_token(self) -> str:
        if self._token is None:
            resp = self.client.post(
                f"{self.base_url}/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
            )
            resp.raise_for_status()
            self._token = resp.json()["access_token"]
        return self._token

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
        }

    def get_order(self, order_id: str) -> dict:
        """Fetch an order.  Raises httpx.HTTPError on failure."""
        resp = self.client.get(
            f"{self.base_url}/v2/checkout/orders/{order_id}", headers=self._headers(),
        )
        resp.raise_for_status()
        return resp.json()

    def capture_order(self, order_id: str) -> dict:
        """Capture ("accept") an approved order.  Raises httpx.HTTPError on failure."""
        resp = self.client.post(
            f"{self.base_url}/v2/checkout/orders/{order_id}/capture",
            headers=self._headers(),
            json={},
        )
        resp.raise_for_status()
        log.info("Captured PayPal order %s", order_id)
        return resp.json()

    def close(self) -> None:
        self.client.close()


def order_amount(order: dict) -> int:
    """Whole-unit amount of the first purchase unit (``"20.00"`` → 20)."""
    value = order["purchase_units"][0]["amount"]["value"]
    return int(float(value))
