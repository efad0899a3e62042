from __future__ import annotations
import asyncio
import logging
import time
from collections import defaultdict
from threading import RLock
from typing import Callable, Awaitable, Any, DefaultDict, List, Set

from hookrunner.domain import Event
from hookrunner.ports import EventBus

Handler = Callable[[Event], Any] | Callable[[Event], Awaitable[Any]]

_log = logging.getLogger("hookrunner.bus")


class LocalEventBus(EventBus):
    """
    In-process bus keyed by event type prefix.

    - ``subscribe("", h)`` or ``subscribe("*", h)`` receives every event.
    - coroutine handlers are scheduled on the running loop (or run to completion when there is none).
    - a failing handler is logged and skipped; publishing never raises into the execution lifecycle.
    """

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._lock = RLock()
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, type_prefix: str, handler: Handler) -> None:
        with self._lock:
            self._subs[type_prefix].append(handler)

    def publish(self, event: Event) -> None:
        with self._lock:
            pairs = [(p, hs[:]) for p, hs in self._subs.items()]
        for prefix, handlers in pairs:
            if not (prefix in ("", "*") or event.type.startswith(prefix)):
                continue
            for h in handlers:
                try:
                    res = h(event)
                except Exception:
                    _log.exception("bus.handler_failed", extra={"extra": {"type": event.type}})
                    continue
                if asyncio.iscoroutine(res):
                    self._schedule(res)

    def _schedule(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def emit(bus: EventBus, type_: str, payload: dict, source: str) -> None:
    bus.publish(Event(type=type_, payload=payload, source=source, ts=time.time()))
