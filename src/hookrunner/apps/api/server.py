# src/hookrunner/apps/api/server.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from hookrunner import __version__
from hookrunner.apps.api import webhooks
from hookrunner.apps.bootstrap import build_ctx
from hookrunner.errors import ExecutionError, HookError, InvalidWebhookId
from hookrunner.services.context import AppContext

_log = logging.getLogger("hookrunner.api")


def _status_for(exc: HookError) -> int:
    if isinstance(exc, InvalidWebhookId):
        return 400
    return 500


def create_app(ctx: Optional[AppContext] = None) -> FastAPI:
    ctx = ctx or build_ctx()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log.info(
            "server.started",
            extra={"extra": {"webhooks": str(ctx.paths.webhooks_dir()), "habitats": str(ctx.paths.habitats_dir()), "debug": ctx.settings.debug}},
        )
        try:
            yield
        finally:
            # let running scripts finish so no habitat is left behind
            await ctx.webhooks.drain()

    app = FastAPI(title="hookrunner", version=__version__, lifespan=lifespan)
    app.state.ctx = ctx

    @app.exception_handler(HookError)
    async def _hook_error(request: Request, exc: HookError):
        status = _status_for(exc)
        if isinstance(exc, ExecutionError):
            _log.error(
                "webhook.error",
                extra={"extra": {"webhook_id": exc.webhook_id, "habitat_id": exc.habitat_id, "script": str(exc.script_path), "error": str(exc)}},
            )
        return PlainTextResponse(str(exc), status_code=status)

    app.include_router(webhooks.router, prefix="/webhooks")

    # --- health endpoints (for probes / orchestrators) ---
    @app.get("/health/live")
    async def health_live():
        return {"ok": True}

    @app.get("/health/ready")
    async def health_ready():
        return {"ok": True, "habitats": ctx.habitats.rented(), "retired": ctx.habitats.retired()}

    return app
