# src/hookrunner/apps/cli/app.py
from __future__ import annotations

from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer

# load .env once so HOOKRUNNER_* variables reach Settings.from_sources()
load_dotenv(find_dotenv(usecwd=True))

from hookrunner.apps.bootstrap import build_ctx
from hookrunner.errors import HookError
from hookrunner.services.settings import Settings

app = typer.Typer(help="Run scripts from a webhooks directory when their webhook is called.")


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj


# -------- root callback --------


@app.callback()
def main(
    ctx: typer.Context,
    base_dir: Optional[str] = typer.Option(None, "--base-dir", help="Base directory (default ~/.hookrunner or HOOKRUNNER_BASE_DIR)"),
    webhooks: Optional[str] = typer.Option(None, "--webhooks", help="Directory holding one script or folder per webhook id"),
    habitats: Optional[str] = typer.Option(None, "--habitats", help="Writable directory for per-run habitats"),
    logs: Optional[str] = typer.Option(None, "--logs", help="Log directory"),
    shell: Optional[str] = typer.Option(None, "--shell", help="Shell binary for shell-typed scripts"),
    engine: Optional[str] = typer.Option(None, "--engine", help="Engine command for engine-typed scripts, e.g. 'deno run --allow-all'"),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Enable GET /webhooks/{id} resolution reports"),
):
    """Read settings (.env / ENV) and apply command-line overrides."""
    settings = Settings.from_sources().with_overrides(
        base_dir=base_dir,
        webhooks_dir=webhooks,
        habitats_dir=habitats,
        logs_dir=logs,
        shell=shell,
        engine_cmd=engine,
        debug=debug,
    )
    ctx.obj = settings


# -------- commands --------


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
):
    """Start the HTTP server (FastAPI on uvicorn)."""
    import uvicorn
    from hookrunner.apps.api.server import create_app

    settings = _settings(ctx).with_overrides(host=host, port=port, log_level=log_level)
    app_ctx = build_ctx(settings)
    uvicorn.run(create_app(app_ctx), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


@app.command("resolve")
def resolve(ctx: typer.Context, webhook_id: str = typer.Argument(..., help="Webhook id to look up")):
    """Show which script a webhook id resolves to, without running it."""
    app_ctx = build_ctx(_settings(ctx), configure_logging=False)
    try:
        typer.echo(app_ctx.webhooks.describe(webhook_id), nl=False)
    except HookError as e:
        typer.echo(str(e), err=True, nl=False)
        raise typer.Exit(code=1)


@app.command("where")
def where(ctx: typer.Context):
    settings = _settings(ctx)
    typer.echo(f"base_dir: {settings.base_dir}")
    typer.echo(f"webhooks: {settings.webhooks_dir}")
    typer.echo(f"habitats: {settings.habitats_dir}")
    typer.echo(f"logs: {settings.logs_dir}")


if __name__ == "__main__":
    app()
