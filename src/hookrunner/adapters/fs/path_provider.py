# src/hookrunner/adapters/fs/path_provider.py
from __future__ import annotations
from dataclasses import dataclass
import logging
from pathlib import Path
from hookrunner.services.settings import Settings

_log = logging.getLogger("hookrunner.paths")


@dataclass(slots=True)
class PathProvider:
    """Single source of truth for the server's directories. Always pathlib.Path."""

    base: Path
    webhooks: Path
    habitats: Path
    logs: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> "PathProvider":
        return cls(
            base=settings.base_dir.expanduser().resolve(),
            webhooks=settings.webhooks_dir.expanduser().resolve(),
            habitats=settings.habitats_dir.expanduser().resolve(),
            logs=settings.logs_dir.expanduser().resolve(),
        )

    def base_dir(self) -> Path:
        return self.base

    def webhooks_dir(self) -> Path:
        return self.webhooks

    def habitats_dir(self) -> Path:
        return self.habitats

    def logs_dir(self) -> Path:
        return self.logs

    def ensure_tree(self) -> None:
        for p in (self.webhooks_dir(), self.habitats_dir(), self.logs_dir()):
            if not p.exists():
                _log.warning("paths.creating", extra={"extra": {"path": str(p)}})
            p.mkdir(parents=True, exist_ok=True)
