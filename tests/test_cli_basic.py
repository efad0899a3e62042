# tests/test_cli_basic.py
from typer.testing import CliRunner

from tests.conftest import write_script


def test_cli_help(cli_app):
    r = CliRunner().invoke(cli_app, ["--help"])
    assert r.exit_code == 0
    assert "Usage" in r.stdout


def test_where(cli_app, tmp_path):
    base = tmp_path / "b"
    r = CliRunner().invoke(cli_app, ["--base-dir", str(base), "where"])
    assert r.exit_code == 0
    assert f"webhooks: {base.resolve() / 'webhooks'}" in r.stdout
    assert f"habitats: {base.resolve() / 'habitats'}" in r.stdout


def test_resolve_found_and_missing(cli_app, tmp_path):
    base = tmp_path / "b"
    write_script(base / "webhooks" / "demo.sh", "echo hi\n")

    r = CliRunner().invoke(cli_app, ["--base-dir", str(base), "resolve", "demo"])
    assert r.exit_code == 0
    assert "demo.sh" in r.stdout

    r = CliRunner().invoke(cli_app, ["--base-dir", str(base), "resolve", "ghost"])
    assert r.exit_code == 1
    assert "ghost" in r.output
