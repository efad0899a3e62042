from __future__ import annotations

import asyncio
import json

import pytest

from hookrunner.errors import InvalidWebhookId, LaunchError, ScriptNotFound
from hookrunner.services.webhooks import build_envelope
from tests.conftest import write_script


async def _collect(run) -> bytes:
    out = b""
    async for chunk in run.output:
        out += chunk
    return out


def test_envelope_shape():
    payload = build_envelope(b'{"ref":"main"}', "sha1=abc")
    assert json.loads(payload) == {"headers": {"secret": "sha1=abc"}, "body": '{"ref":"main"}'}
    assert json.loads(build_envelope(b"", None)) == {"headers": {"secret": None}, "body": ""}


def test_envelope_tolerates_invalid_utf8():
    payload = json.loads(build_envelope(b"ok\xff", None))
    assert payload["body"].startswith("ok")


@pytest.mark.parametrize("bad", ["a.b", "../etc", "a/b", "sp ace", "ünï", "semi;colon"])
def test_validate_rejects_before_touching_disk(app_ctx, monkeypatch, bad):
    def _no_fs(*_a, **_kw):
        raise AssertionError("filesystem probed for an invalid id")

    monkeypatch.setattr("hookrunner.services.scripts.resolution.probe", _no_fs)
    with pytest.raises(InvalidWebhookId):
        app_ctx.webhooks.resolve(bad)


def test_validate_accepts_allowed_characters(app_ctx):
    assert app_ctx.webhooks.validate("Deploy_prod-2") == "Deploy_prod-2"


def test_not_found_names_directory_and_id(app_ctx, webhooks_dir):
    with pytest.raises(ScriptNotFound) as ei:
        app_ctx.webhooks.resolve("ghost")
    assert str(webhooks_dir) in str(ei.value)
    assert "'ghost'" in str(ei.value)
    assert app_ctx.habitats.rented() == []


def test_describe(app_ctx, webhooks_dir):
    write_script(webhooks_dir / "demo.sh", "echo hi\n")
    text = app_ctx.webhooks.describe("demo")
    assert "webhook id: 'demo'" in text
    assert str(webhooks_dir / "demo.sh") in text
    assert "(type: 'shell')" in text


@pytest.mark.asyncio
async def test_trigger_holds_lease_until_exit(app_ctx, webhooks_dir, habitats_dir):
    write_script(webhooks_dir / "demo.sh", 'printf "%s" "$1"\n')

    run = await app_ctx.webhooks.trigger("demo", b"hello", secret="s3cret")
    assert run.habitat.id == 0
    out = await _collect(run)
    await run.completion

    assert json.loads(out) == {"headers": {"secret": "s3cret"}, "body": "hello"}
    assert app_ctx.habitats.rented() == []
    assert not (habitats_dir / "0").exists()
    assert app_ctx.webhooks.in_flight == 0


@pytest.mark.asyncio
async def test_concurrent_triggers_get_distinct_habitats(app_ctx, webhooks_dir):
    write_script(webhooks_dir / "slow.sh", "sleep 0.3\necho ok\n")

    runs = await asyncio.gather(*(app_ctx.webhooks.trigger("slow", b"") for _ in range(3)))
    assert sorted(r.habitat.id for r in runs) == [0, 1, 2]
    assert app_ctx.habitats.rented() == [0, 1, 2]

    outs = await asyncio.gather(*(_collect(r) for r in runs))
    assert all(o == b"ok\n" for o in outs)
    await app_ctx.webhooks.drain()
    assert app_ctx.habitats.rented() == []


@pytest.mark.asyncio
async def test_launch_failure_returns_lease(settings):
    from hookrunner.apps.bootstrap import build_ctx

    ctx = build_ctx(settings.with_overrides(shell=str(settings.base_dir / "missing-shell")))
    write_script(ctx.paths.webhooks_dir() / "demo.sh", "echo hi\n")

    with pytest.raises(LaunchError):
        await ctx.webhooks.trigger("demo", b"")
    await ctx.webhooks.drain()

    assert ctx.habitats.rented() == []
    assert not (ctx.paths.habitats_dir() / "0").exists()


@pytest.mark.asyncio
async def test_unread_run_still_finishes(app_ctx, webhooks_dir, habitats_dir):
    write_script(webhooks_dir / "big.sh", "head -c 2000000 /dev/zero\n")

    run = await app_ctx.webhooks.trigger("big", b"")
    run.execution.detach()
    await asyncio.wait_for(app_ctx.webhooks.drain(), timeout=30)

    assert app_ctx.habitats.rented() == []
    assert not (habitats_dir / "0").exists()


class _StuckExecutor:
    """Never gets a script started."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()

    async def execute(self, script, habitat, payload, *, webhook_id=""):
        self.entered.set()
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_cancelled_start_releases_caller_and_lease(app_ctx, webhooks_dir):
    from hookrunner.services.webhooks import WebhookService

    write_script(webhooks_dir / "demo.sh", "echo hi\n")
    stuck = _StuckExecutor()
    service = WebhookService(resolver=app_ctx.resolver, habitats=app_ctx.habitats, executor=stuck, bus=app_ctx.bus)

    trigger = asyncio.create_task(service.trigger("demo", b""))
    await asyncio.wait_for(stuck.entered.wait(), timeout=5)
    assert app_ctx.habitats.rented() == [0]

    for task in list(service._runs):
        task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(trigger, timeout=5)

    assert service.in_flight == 0
    assert app_ctx.habitats.rented() == []


@pytest.mark.asyncio
async def test_habitat_that_cannot_be_removed_is_retired(app_ctx, webhooks_dir, habitats_dir, monkeypatch):
    write_script(webhooks_dir / "demo.sh", "echo hi\n")

    def _undeletable(path):
        raise PermissionError(13, "Permission denied", str(path))

    with monkeypatch.context() as m:
        m.setattr("hookrunner.services.scripts.execution._remove", _undeletable)
        run = await app_ctx.webhooks.trigger("demo", b"")
        assert await _collect(run) == b"hi\n"
        await asyncio.wait_for(app_ctx.webhooks.drain(), timeout=10)

    assert app_ctx.habitats.retired() == [0]
    assert app_ctx.habitats.rented() == []

    again = await app_ctx.webhooks.trigger("demo", b"")
    assert again.habitat.id == 1
    assert await _collect(again) == b"hi\n"
    await asyncio.wait_for(app_ctx.webhooks.drain(), timeout=10)
    assert not (habitats_dir / "1").exists()
    assert app_ctx.habitats.rented() == []
