# src/hookrunner/services/context.py
from __future__ import annotations
from dataclasses import dataclass

from hookrunner.adapters.fs.path_provider import PathProvider
from hookrunner.ports import EventBus
from hookrunner.services.settings import Settings
from hookrunner.services.scripts import Executor, HabitatAllocator, ScriptResolver
from hookrunner.services.webhooks import WebhookService


@dataclass(slots=True)
class AppContext:
    """Everything one server instance owns. Built once by ``build_ctx`` and handed to the app."""

    settings: Settings
    paths: PathProvider
    bus: EventBus
    resolver: ScriptResolver
    habitats: HabitatAllocator
    executor: Executor
    webhooks: WebhookService
