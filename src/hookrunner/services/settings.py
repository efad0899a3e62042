# src/hookrunner/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
import shlex
from pathlib import Path
from typing import Optional, Dict
from hookrunner.config import const

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_env_file(path: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return data
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


@dataclass(frozen=True, slots=True)
class Settings:
    base_dir: Path
    webhooks_dir: Path
    habitats_dir: Path
    logs_dir: Path
    shell: str = const.SHELL
    engine_cmd: tuple[str, ...] = const.ENGINE_CMD
    engine_ext: str = const.ENGINE_EXT
    shell_ext: str = const.SHELL_EXT
    entry_stem: str = const.ENTRY_STEM
    host: str = const.HOST
    port: int = const.PORT
    debug: bool = False
    log_level: str = "INFO"

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        env_file_vars = _parse_env_file(env_file) if env_file else {}

        def pick_env(key: str, default: Optional[str] = None) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or (default or "")

        def pick_dir(key: str, fallback: Path) -> Path:
            raw = pick_env(key)
            return Path(raw).expanduser().resolve() if raw else fallback

        base_raw = pick_env("HOOKRUNNER_BASE_DIR")
        base = Path(base_raw).expanduser().resolve() if base_raw else (Path.home() / ".hookrunner").resolve()

        engine_raw = pick_env("HOOKRUNNER_ENGINE")
        engine_cmd = tuple(shlex.split(engine_raw)) if engine_raw else const.ENGINE_CMD

        return Settings(
            base_dir=base,
            webhooks_dir=pick_dir("HOOKRUNNER_WEBHOOKS_DIR", base / "webhooks"),
            habitats_dir=pick_dir("HOOKRUNNER_HABITATS_DIR", base / "habitats"),
            logs_dir=pick_dir("HOOKRUNNER_LOGS_DIR", base / "logs"),
            shell=pick_env("HOOKRUNNER_SHELL", const.SHELL),
            engine_cmd=engine_cmd,
            engine_ext=pick_env("HOOKRUNNER_ENGINE_EXT", const.ENGINE_EXT),
            shell_ext=pick_env("HOOKRUNNER_SHELL_EXT", const.SHELL_EXT),
            entry_stem=pick_env("HOOKRUNNER_ENTRY", const.ENTRY_STEM),
            host=pick_env("HOOKRUNNER_HOST", const.HOST),
            port=int(pick_env("HOOKRUNNER_PORT", str(const.PORT))),
            debug=pick_env("HOOKRUNNER_DEBUG", "0").strip().lower() in _TRUTHY,
            log_level=pick_env("HOOKRUNNER_LOG_LEVEL", "INFO"),
        )

    def with_overrides(self, **kw) -> "Settings":
        # None means "not given on the command line"
        safe = {k: v for k, v in kw.items() if v is not None}
        for key in ("base_dir", "webhooks_dir", "habitats_dir", "logs_dir"):
            if key in safe:
                safe[key] = Path(safe[key]).expanduser().resolve()
        if "engine_cmd" in safe and isinstance(safe["engine_cmd"], str):
            safe["engine_cmd"] = tuple(shlex.split(safe["engine_cmd"]))
        if "base_dir" in safe:
            # directories not given explicitly follow the new base
            for key, name in (("webhooks_dir", "webhooks"), ("habitats_dir", "habitats"), ("logs_dir", "logs")):
                if key not in safe and getattr(self, key) == self.base_dir / name:
                    safe[key] = safe["base_dir"] / name
        return replace(self, **safe)
