# src/hookrunner/apps/api/webhooks.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from hookrunner.config import const
from hookrunner.services.context import AppContext
from hookrunner.services.webhooks import WebhookRun

router = APIRouter()

DEBUG_DISABLED = "enable debug mode (pass the --debug argument) to view information about this webhook"


class ScriptOutputResponse(StreamingResponse):
    """Streams a run's merged output; a client that goes away releases it."""

    media_type = "text/plain"

    def __init__(self, run: WebhookRun) -> None:
        super().__init__(run.output, headers={"X-Habitat-Id": str(run.habitat.id)})
        self.run = run

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            # no-op once the output was read to the end
            self.run.execution.detach()


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


@router.get("/{webhook_id}", response_class=PlainTextResponse)
async def describe_webhook(webhook_id: str, ctx: AppContext = Depends(get_ctx)):
    """Show which script a webhook resolves to (debug mode only)."""
    if not ctx.settings.debug:
        return PlainTextResponse(DEBUG_DISABLED, status_code=500)
    return PlainTextResponse(ctx.webhooks.describe(webhook_id))


@router.post("/{webhook_id}")
async def trigger_webhook(webhook_id: str, request: Request, ctx: AppContext = Depends(get_ctx)):
    """Run the webhook's script and stream its stdout+stderr back."""
    # checked here as well so a bad id costs nothing, not even reading the body
    ctx.webhooks.validate(webhook_id)
    body = await request.body()
    secret = request.headers.get(const.SIGNATURE_HEADER)
    run = await ctx.webhooks.trigger(webhook_id, body, secret=secret)
    return ScriptOutputResponse(run)
