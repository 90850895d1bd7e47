"""
HTTP trigger for Catalog Sync

A scheduler calls ``GET /api/sync``; the response is a plain-text status line
with HTTP 200 on completion, 500 on a fatal error and 409 when a run is
already in progress.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from catalog_sync.config import LoggingSettings, SyncConfig
from catalog_sync.errors import SyncError
from catalog_sync.runner import SyncRunner
from catalog_sync.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(title="Catalog Sync")


@app.on_event("startup")
def startup() -> None:
    configure_logging(json_logging=LoggingSettings().json_logging)


@app.exception_handler(SyncError)
def sync_error_handler(_: Request, exc: SyncError) -> PlainTextResponse:
    logger.error(f"Sync could not start: {exc}")
    return PlainTextResponse(f"Sync failed: {exc}", status_code=500)


def get_runner() -> SyncRunner:
    return SyncRunner.from_config(SyncConfig.load())


@app.get("/api/sync", response_class=PlainTextResponse)
def trigger_sync(runner: SyncRunner = Depends(get_runner)) -> PlainTextResponse:
    result = runner.run()
    return PlainTextResponse(result.message, status_code=result.status_code)
