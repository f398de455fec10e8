"""Membership sign-up form backend."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from ... import config
from ...config import SyncConfig
from ...membership import SignupError, process_signup
from ..dependencies import SignupClients, get_signup_clients, get_sync_config

router = APIRouter()
log = logging.getLogger(__name__)


def friendly_error(details: str) -> str:
    """User-facing message shown when the form submission fails."""
    return f"{config.CONTACT_MESSAGE}\n Details: {details}"


async def _read_form(request: Request) -> dict:
    if request.headers.get("content-type", "").startswith("application/json"):
        body = await request.json()
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items()}


@router.post("/membership")
async def submit_membership(
    request: Request,
    cfg: SyncConfig = Depends(get_sync_config),
    clients: SignupClients = Depends(get_signup_clients),
):
    log.info("Received request!")
    try:
        form = await _read_form(request)
    except ValueError:
        return PlainTextResponse(friendly_error("Malformed request body."), status_code=400)

    try:
        process_signup(
            form,
            paypal=clients.paypal,
            roster=clients.roster,
            directory=clients.directory,
            notifier=clients.notifier,
            welcome_template_id=cfg.welcome_email_template_id,
        )
    except SignupError as exc:
        log.error("Sign-up failed: %s", exc)
        return PlainTextResponse(friendly_error(str(exc)), status_code=exc.status)
    except Exception as exc:
        log.exception("Unexpected sign-up failure")
        return PlainTextResponse(friendly_error(str(exc)), status_code=500)

    return RedirectResponse(config.SUCCESS_URL, status_code=303)
