"""HTTP triggers for the two mailing-list synchronizers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...config import SyncConfig
from ...sync import SyncFailedError, remove_expired_members, synchronize_mailing_list
from ..dependencies import get_sync_config, require_trigger_token

router = APIRouter(dependencies=[Depends(require_trigger_token)])
log = logging.getLogger(__name__)


def _run(job, cfg: SyncConfig, dry_run: bool) -> JSONResponse:
    try:
        summary = job(cfg, dry_run=dry_run)
    except SyncFailedError as exc:
        log.error("%s", exc)
        return JSONResponse(
            {"status": "failed", **exc.summary.to_dict()}, status_code=500,
        )
    return JSONResponse({"status": "ok", **summary.to_dict()})


@router.post("/sync")
def sync_mailing_list(dry_run: bool = False, cfg: SyncConfig = Depends(get_sync_config)):
    log.info("Received request.")
    return _run(synchronize_mailing_list, cfg, dry_run)


@router.post("/remove-expired")
def remove_expired(dry_run: bool = False, cfg: SyncConfig = Depends(get_sync_config)):
    log.info("Received request.")
    return _run(remove_expired_members, cfg, dry_run)
