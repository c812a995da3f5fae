"""
Shared CLI context: settings overrides and lazily wired runtime.
"""

from __future__ import annotations

import json
from typing import Any

import typer

from ..infra.settings import Settings, settings
from ..runtime.wiring import Runtime, build_runtime


def init_context(
    ctx: typer.Context,
    *,
    json_output: bool = False,
    channels_file: str | None = None,
    library_catalog: str | None = None,
) -> None:
    """Store global options on the Typer context for subcommands."""
    ctx.ensure_object(dict)
    overrides: dict[str, Any] = {}
    if channels_file:
        overrides["channels_file"] = channels_file
    if library_catalog:
        overrides["library_catalog"] = library_catalog
    ctx.obj["json"] = json_output
    ctx.obj["settings"] = settings.model_copy(update=overrides) if overrides else settings


def get_settings(ctx: typer.Context) -> Settings:
    obj = ctx.find_root().obj or {}
    return obj.get("settings", settings)


def get_runtime(ctx: typer.Context) -> Runtime:
    """Wire the runtime once per invocation."""
    root = ctx.find_root()
    root.ensure_object(dict)
    runtime = root.obj.get("runtime")
    if runtime is None:
        runtime = build_runtime(get_settings(ctx))
        root.obj["runtime"] = runtime
    return runtime


def wants_json(ctx: typer.Context, json_output: bool) -> bool:
    obj = ctx.find_root().obj or {}
    return json_output or bool(obj.get("json"))


def echo_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2))


def fail(message: str, json_output: bool) -> None:
    """Report an error and exit with status 1."""
    if json_output:
        echo_json({"status": "error", "error": message})
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)
