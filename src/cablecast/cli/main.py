"""
Main CLI application using Typer with router-based command dispatch.

This module provides the command-line interface for CableCast, calling
the channel service and horizon manager and outputting JSON when
requested.
"""

from __future__ import annotations

import time

import typer

from ..infra.logging import configure_logging
from .commands import channel
from .context import echo_json, get_runtime, get_settings, init_context, wants_json
from .router import get_router

app = typer.Typer(help="CableCast linear channel scheduler")

router = get_router(app)

router.register(
    "channel",
    channel.app,
    help_text="Broadcast channel operations",
)


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="HTTP port"),
):
    """Run the HTTP API with rolling schedule maintenance."""
    from ..web.server import run_server

    run_server(host=host, port=port, settings=get_settings(ctx))


@app.command("maintain")
def maintain(
    ctx: typer.Context,
    once: bool = typer.Option(False, "--once", help="Run a single maintenance pass and exit"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Keep every enabled channel's schedule buffered ahead of now."""
    as_json = wants_json(ctx, json_output)
    manager = get_runtime(ctx).horizon_manager

    if once:
        report = manager.evaluate_once()
        if as_json:
            echo_json(
                {
                    "status": "ok" if report.is_healthy else "degraded",
                    "channels_evaluated": report.channels_evaluated,
                    "channels_extended": report.channels_extended,
                    "channels_failed": report.channels_failed,
                    "min_buffer_minutes": report.min_buffer_minutes,
                }
            )
        else:
            typer.echo(
                f"Evaluated {report.channels_evaluated} channels: "
                f"{report.channels_extended} extended, {report.channels_failed} failed"
            )
        if report.channels_failed:
            raise typer.Exit(1)
        return

    manager.start()
    typer.echo("Maintenance running; press Ctrl+C to stop")
    try:
        while manager.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        manager.stop()


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", help="Output in JSON format"),
    channels_file: str | None = typer.Option(
        None, "--channels-file", help="Channels JSON document (overrides settings)"
    ),
    catalog: str | None = typer.Option(
        None, "--catalog", help="Library catalog YAML (overrides settings)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
):
    """CableCast - linear broadcast channels from a media library."""
    configure_logging(log_level)
    init_context(ctx, json_output=json, channels_file=channels_file, library_catalog=catalog)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
