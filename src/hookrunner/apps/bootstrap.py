# src/hookrunner/apps/bootstrap.py
from __future__ import annotations
from typing import Optional

from hookrunner.adapters.fs.path_provider import PathProvider
from hookrunner.services.context import AppContext
from hookrunner.services.eventbus import LocalEventBus
from hookrunner.services.logging import setup_logging, attach_event_logger
from hookrunner.services.scripts import Executor, HabitatAllocator, ScriptResolver
from hookrunner.services.settings import Settings
from hookrunner.services.webhooks import WebhookService


def build_ctx(settings: Optional[Settings] = None, *, configure_logging: bool = True) -> AppContext:
    settings = settings or Settings.from_sources()

    paths = PathProvider.from_settings(settings)
    paths.ensure_tree()

    bus = LocalEventBus()
    if configure_logging:
        root_logger = setup_logging(paths, settings.log_level)
        attach_event_logger(bus, root_logger.getChild("events"))

    resolver = ScriptResolver(
        paths.webhooks_dir(),
        engine_ext=settings.engine_ext,
        shell_ext=settings.shell_ext,
        entry_stem=settings.entry_stem,
    )
    habitats = HabitatAllocator(paths.habitats_dir(), bus=bus)
    executor = Executor(shell=settings.shell, engine_cmd=settings.engine_cmd, bus=bus)
    webhooks = WebhookService(resolver=resolver, habitats=habitats, executor=executor, bus=bus)

    return AppContext(
        settings=settings,
        paths=paths,
        bus=bus,
        resolver=resolver,
        habitats=habitats,
        executor=executor,
        webhooks=webhooks,
    )
