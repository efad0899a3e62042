"""Turns an incoming webhook into a running script.

The HTTP layer only translates the errors raised here into status codes; the
whole lifecycle (validation, resolution, habitat lease, execution, cleanup)
lives in :class:`WebhookService` so it can be driven without a server.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Set

from hookrunner.config import const
from hookrunner.domain import HabitatLease, ResolvedScript
from hookrunner.errors import ExecutionError, InvalidWebhookId, LaunchError, ScriptNotFound
from hookrunner.ports import EventBus, ScriptExecutor
from hookrunner.services.eventbus import emit
from hookrunner.services.scripts.execution import ActiveExecution
from hookrunner.services.scripts.habitats import HabitatAllocator
from hookrunner.services.scripts.resolution import ScriptResolver

_log = logging.getLogger("hookrunner.webhooks")


@dataclass(slots=True)
class WebhookRun:
    """One triggered webhook: its script, its habitat and the live execution."""

    webhook_id: str
    script: ResolvedScript
    habitat: HabitatLease
    execution: ActiveExecution
    completion: asyncio.Task

    @property
    def output(self) -> AsyncIterator[bytes]:
        return self.execution.output


def build_envelope(body: bytes, secret: Optional[str]) -> str:
    """The single argument every script receives.

    The signature header is passed through as-is; verifying it is up to the script.
    """
    return json.dumps(
        {"headers": {"secret": secret}, "body": body.decode("utf-8", errors="replace")},
        ensure_ascii=False,
        separators=(",", ":"),
    )


class WebhookService:
    def __init__(
        self,
        *,
        resolver: ScriptResolver,
        habitats: HabitatAllocator,
        executor: ScriptExecutor,
        bus: EventBus,
        id_pattern: str = const.WEBHOOK_ID_PATTERN,
    ) -> None:
        self.resolver = resolver
        self.habitats = habitats
        self.executor = executor
        self.bus = bus
        self._id_pattern = id_pattern
        self._id_re = re.compile(id_pattern)
        self._runs: Set[asyncio.Task] = set()

    # ---------- lookups ----------

    def validate(self, webhook_id: str) -> str:
        if self._id_re.fullmatch(webhook_id) is None:
            _log.warning("webhook.rejected", extra={"extra": {"webhook_id": webhook_id}})
            emit(self.bus, "webhook.rejected", {"webhook_id": webhook_id}, "webhooks")
            raise InvalidWebhookId(webhook_id, self._id_pattern)
        return webhook_id

    def resolve(self, webhook_id: str) -> ResolvedScript:
        self.validate(webhook_id)
        script = self.resolver.resolve(webhook_id)
        if script is None:
            webhooks_dir = self.resolver.webhooks_dir
            _log.warning("webhook.not_found", extra={"extra": {"webhook_id": webhook_id, "webhooks_dir": str(webhooks_dir)}})
            emit(self.bus, "webhook.not_found", {"webhook_id": webhook_id, "webhooks_dir": str(webhooks_dir)}, "webhooks")
            raise ScriptNotFound(webhook_id, webhooks_dir)
        return script

    def describe(self, webhook_id: str) -> str:
        """Plain-text report of what ``webhook_id`` resolves to. Never runs anything."""
        script = self.resolve(webhook_id)
        return (
            f"webhook id: '{webhook_id}'\n"
            f"script path: '{script.path}' (type: '{script.kind.value}')\n"
            f"webhooks directory: '{self.resolver.webhooks_dir}'\n"
        )

    # ---------- execution ----------

    @property
    def in_flight(self) -> int:
        return len(self._runs)

    async def trigger(self, webhook_id: str, body: bytes, *, secret: Optional[str] = None) -> WebhookRun:
        """
        Resolve and start the script for ``webhook_id``.

        Returns as soon as the process is running. The habitat lease is held by a
        background task until the process exits and its directory is removed;
        ``WebhookRun.completion`` is that task.
        """
        script = self.resolve(webhook_id)
        payload = build_envelope(body, secret)

        started: asyncio.Future = asyncio.get_running_loop().create_future()
        task = asyncio.create_task(self._supervise(webhook_id, script, payload, started))
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

        try:
            return await asyncio.shield(started)
        except asyncio.CancelledError:
            # nobody will read the output; let the script run out on its own
            started.add_done_callback(_detach_abandoned)
            raise

    async def _supervise(self, webhook_id: str, script: ResolvedScript, payload: str, started: asyncio.Future) -> None:
        with self.habitats.lease() as lease:
            ctx = {"webhook_id": webhook_id, "habitat_id": lease.id, "script": str(script.path)}
            try:
                execution = await self.executor.execute(script, lease, payload, webhook_id=webhook_id)
            except ExecutionError as e:
                emit(self.bus, "webhook.failed", {**ctx, "error": str(e)}, "webhooks")
                self._retire_if_left_behind(lease)
                started.set_exception(e)
                return
            except Exception as e:
                _log.exception("webhook.failed", extra={"extra": ctx})
                emit(self.bus, "webhook.failed", {**ctx, "error": repr(e)}, "webhooks")
                self._retire_if_left_behind(lease)
                started.set_exception(LaunchError(webhook_id, f"unexpected error starting script: {e!r}", habitat_id=lease.id, script_path=script.path))
                return
            except BaseException:
                # cancelled before the script started: release the caller too
                if not started.done():
                    started.cancel()
                raise

            _log.info("webhook.started", extra={"extra": {**ctx, "kind": script.kind.value}})
            started.set_result(
                WebhookRun(
                    webhook_id=webhook_id,
                    script=script,
                    habitat=lease,
                    execution=execution,
                    completion=asyncio.current_task(),  # type: ignore[arg-type]
                )
            )
            try:
                await execution.wait()
            except Exception:
                _log.exception("webhook.completion_failed", extra={"extra": ctx})
                self._retire_if_left_behind(lease)

    def _retire_if_left_behind(self, lease: HabitatLease) -> None:
        # a directory that could not be removed would fail every later staging
        if lease.path.exists():
            self.habitats.retire(lease.id)

    async def drain(self) -> None:
        """Wait for every in-flight script to exit and give its habitat back."""
        while self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)


def _detach_abandoned(fut: asyncio.Future) -> None:
    if fut.cancelled() or fut.exception() is not None:
        return
    fut.result().execution.detach()
