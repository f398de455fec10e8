"""FastAPI application factory for the membership HTTP functions."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import __version__
from ..config import ConfigError
from ..membership import SignupError

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="membersync", version=__version__)

    from .routes import membership, sync_routes

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError):
        log.error("Configuration error: %s", exc)
        return JSONResponse({"status": "error", "detail": str(exc)}, status_code=500)

    # Raised by the sign-up dependencies, before the route's own handling
    @app.exception_handler(SignupError)
    async def signup_error_handler(request: Request, exc: SignupError):
        log.error("Sign-up failed: %s", exc)
        return PlainTextResponse(membership.friendly_error(str(exc)), status_code=exc.status)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    app.include_router(membership.router)
    app.include_router(sync_routes.router)

    return app
