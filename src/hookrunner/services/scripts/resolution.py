# src/hookrunner/services/scripts/resolution.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from hookrunner.adapters.fs.probe import probe
from hookrunner.config import const
from hookrunner.domain import Interpreter, ResolvedScript

_log = logging.getLogger("hookrunner.resolution")


class ScriptResolver:
    """
    Maps a webhook id to the script that should run for it.

    Lookup order under ``webhooks_dir`` (first hit wins):

    1. ``{id}{engine_ext}`` file            -> engine
    2. ``{id}{shell_ext}`` file             -> shell
    3. ``{id}/`` directory, inside it:
         ``run{engine_ext}``, ``{id}{engine_ext}``,
         ``run{shell_ext}``, ``{id}{shell_ext}``
    4. ``{id}`` plain file (no extension)   -> shell
    5. nothing -> ``None``

    The id must already be validated; it is used verbatim as a path segment.
    """

    def __init__(
        self,
        webhooks_dir: Path | str,
        *,
        engine_ext: str = const.ENGINE_EXT,
        shell_ext: str = const.SHELL_EXT,
        entry_stem: str = const.ENTRY_STEM,
    ) -> None:
        self.webhooks_dir = Path(webhooks_dir).expanduser().resolve()
        self.engine_ext = engine_ext
        self.shell_ext = shell_ext
        self.entry_stem = entry_stem

    def resolve(self, webhook_id: str) -> Optional[ResolvedScript]:
        root = self.webhooks_dir

        engine_file = probe(root / f"{webhook_id}{self.engine_ext}")
        if engine_file.is_file:
            return self._found(webhook_id, Interpreter.ENGINE, engine_file.path)

        shell_file = probe(root / f"{webhook_id}{self.shell_ext}")
        if shell_file.is_file:
            return self._found(webhook_id, Interpreter.SHELL, shell_file.path)

        bare = probe(root / webhook_id)
        if bare.is_dir:
            candidates = (
                (f"{self.entry_stem}{self.engine_ext}", Interpreter.ENGINE),
                (f"{webhook_id}{self.engine_ext}", Interpreter.ENGINE),
                (f"{self.entry_stem}{self.shell_ext}", Interpreter.SHELL),
                (f"{webhook_id}{self.shell_ext}", Interpreter.SHELL),
            )
            for name, kind in candidates:
                inner = probe(bare.path / name)
                if inner.is_file:
                    return self._found(webhook_id, kind, inner.path)

        if bare.is_file:
            return self._found(webhook_id, Interpreter.SHELL, bare.path)

        _log.debug("resolution.miss", extra={"extra": {"webhook_id": webhook_id, "webhooks_dir": str(root)}})
        return None

    def _found(self, webhook_id: str, kind: Interpreter, path: Path) -> ResolvedScript:
        _log.debug("resolution.hit", extra={"extra": {"webhook_id": webhook_id, "kind": kind.value, "path": str(path)}})
        return ResolvedScript(kind=kind, path=path)
