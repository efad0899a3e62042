# tests/conftest.py
from __future__ import annotations
import os
import sys
from pathlib import Path

import pytest

from hookrunner.apps.bootstrap import build_ctx
from hookrunner.services.settings import Settings


def write_script(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # a developer's own HOOKRUNNER_* variables must not leak into tests
    for key in list(os.environ):
        if key.startswith("HOOKRUNNER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def base_dir(tmp_path) -> Path:
    return (tmp_path / "base").resolve()


@pytest.fixture
def settings(base_dir) -> Settings:
    # engine-typed scripts run on the current interpreter so tests need no deno
    return Settings(
        base_dir=base_dir,
        webhooks_dir=base_dir / "webhooks",
        habitats_dir=base_dir / "habitats",
        logs_dir=base_dir / "logs",
        shell="sh",
        engine_cmd=(sys.executable,),
        engine_ext=".py",
        shell_ext=".sh",
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def app_ctx(settings):
    return build_ctx(settings)


@pytest.fixture
def webhooks_dir(app_ctx) -> Path:
    return app_ctx.paths.webhooks_dir()


@pytest.fixture
def habitats_dir(app_ctx) -> Path:
    return app_ctx.paths.habitats_dir()


@pytest.fixture
def cli_app():
    from hookrunner.apps.cli.app import app

    return app
