from __future__ import annotations

import asyncio
import json
import logging

import pytest

from hookrunner.adapters.fs.path_provider import PathProvider
from hookrunner.services.eventbus import LocalEventBus, emit
from hookrunner.services.logging import LOG_FILE, attach_event_logger, setup_logging


def _flush(logger: logging.Logger) -> None:
    for h in logger.handlers:
        h.flush()


def test_events_land_in_log_file(settings):
    paths = PathProvider.from_settings(settings)
    logger = setup_logging(paths, "DEBUG")
    bus = LocalEventBus()
    attach_event_logger(bus, logger.getChild("events"))

    emit(bus, "script.exited", {"webhook_id": "demo", "returncode": 0}, "test")
    _flush(logger)

    lines = (paths.logs_dir() / LOG_FILE).read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert records[0]["msg"] == "logging.initialized"
    event = next(r for r in records if r.get("type") == "script.exited")
    assert event["payload"] == {"webhook_id": "demo", "returncode": 0}
    assert event["logger"] == "hookrunner.events"


def test_prefix_subscription_and_failing_handler():
    bus = LocalEventBus()
    seen: list[str] = []

    def broken(_ev):
        raise RuntimeError("handler bug")

    bus.subscribe("script.", broken)
    bus.subscribe("script.", lambda ev: seen.append(ev.type))
    bus.subscribe("habitat.", lambda ev: seen.append("wrong"))

    emit(bus, "script.started", {}, "test")
    assert seen == ["script.started"]


@pytest.mark.asyncio
async def test_async_handler_is_scheduled():
    bus = LocalEventBus()
    got = asyncio.Event()

    async def handler(_ev):
        got.set()

    bus.subscribe("*", handler)
    emit(bus, "habitat.rented", {"habitat_id": 0}, "test")
    await asyncio.wait_for(got.wait(), timeout=1)
