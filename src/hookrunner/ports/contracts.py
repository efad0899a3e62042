# src/hookrunner/ports/contracts.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Protocol

from hookrunner.domain import Event, HabitatLease, ResolvedScript


class EventBus(Protocol):
    def subscribe(self, type_prefix: str, handler: Callable[[Event], Any]) -> None: ...
    def publish(self, event: Event) -> None: ...


class PathProvider(Protocol):
    def base_dir(self) -> Path: ...
    def webhooks_dir(self) -> Path: ...
    def habitats_dir(self) -> Path: ...
    def logs_dir(self) -> Path: ...


class ScriptExecutor(Protocol):
    async def execute(
        self,
        script: ResolvedScript,
        habitat: HabitatLease,
        payload: str,
        *,
        webhook_id: str = "",
    ) -> Any: ...
