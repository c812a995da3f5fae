"""
Channel command group for the CableCast CLI.

CRUD plus "what's on now", schedule listing and regeneration. Every
command accepts --json; failures print to stderr (or an error payload
under --json) and exit 1.
"""

from __future__ import annotations

import typer

from ...domain.entities import Channel, ContentFilter, ScheduledBlock, parse_utc
from ...infra.exceptions import ChannelNotFoundError, ValidationError
from ..context import echo_json, fail, get_runtime, wants_json

app = typer.Typer(name="channel", help="Broadcast channel management operations")


def _format_block(block: ScheduledBlock) -> str:
    start = block.start_time.strftime("%Y-%m-%d %H:%M")
    end = block.end_time.strftime("%H:%M")
    return f"  {start}-{end}  [{block.kind.value}] {block.title}"


def _echo_channel(channel: Channel) -> None:
    typer.echo(f"  ID: {channel.id}")
    typer.echo(f"  Name: {channel.name}")
    typer.echo(f"  Number: {channel.number}")
    typer.echo(f"  Libraries: {', '.join(channel.library_ids) or '-'}")
    typer.echo(f"  Mode: {channel.programming_mode.value}")
    typer.echo(f"  Enabled: {str(channel.is_enabled).lower()}")
    if channel.description:
        typer.echo(f"  Description: {channel.description}")


@app.command("list")
def list_channels(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List all channels."""
    as_json = wants_json(ctx, json_output)
    channels = get_runtime(ctx).service.list_channels()
    if as_json:
        echo_json(
            {"status": "ok", "channels": [c.to_dict() for c in channels], "count": len(channels)}
        )
        return
    if not channels:
        typer.echo("No channels configured")
        return
    for channel in sorted(channels, key=lambda c: (c.number, c.name)):
        state = "" if channel.is_enabled else " (disabled)"
        typer.echo(f"{channel.number:>4}  {channel.name}  [{channel.id}]{state}")


@app.command("show")
def show_channel(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show a channel."""
    as_json = wants_json(ctx, json_output)
    try:
        channel = get_runtime(ctx).service.get_channel(channel_id)
    except ChannelNotFoundError as e:
        fail(str(e), as_json)
    if as_json:
        echo_json({"status": "ok", "channel": channel.to_dict()})
    else:
        typer.echo("Channel:")
        _echo_channel(channel)


@app.command("add")
def add_channel(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Channel display name"),
    library: list[str] = typer.Option(..., "--library", "-l", help="Source library id (repeatable)"),
    channel_id: str | None = typer.Option(None, "--id", help="Channel id (generated when omitted)"),
    number: int = typer.Option(0, "--number", help="Numeric channel slot"),
    description: str | None = typer.Option(None, "--description", help="Channel description"),
    genre: list[str] | None = typer.Option(None, "--genre", help="Include only this genre (repeatable)"),
    exclude_genre: list[str] | None = typer.Option(
        None, "--exclude-genre", help="Exclude this genre (repeatable)"
    ),
    min_year: int | None = typer.Option(None, "--min-year", help="Earliest release year"),
    max_year: int | None = typer.Option(None, "--max-year", help="Latest release year"),
    enabled: bool = typer.Option(True, "--enabled/--disabled", help="Initial enabled state"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create a channel and generate its initial schedule."""
    as_json = wants_json(ctx, json_output)
    content_filter = None
    if genre or exclude_genre or min_year is not None or max_year is not None:
        content_filter = ContentFilter(
            included_genres=list(genre or []),
            excluded_genres=list(exclude_genre or []),
            min_release_year=min_year,
            max_release_year=max_year,
        )
    channel = Channel(
        id=channel_id or "",
        name=name,
        number=number,
        description=description,
        library_ids=list(library),
        is_enabled=enabled,
        content_filter=content_filter,
    )

    runtime = get_runtime(ctx)
    try:
        created = runtime.service.create_channel(channel)
    except ValidationError as e:
        fail(str(e), as_json)
    timeline = runtime.store.get(created.id)
    blocks = timeline.blocks() if timeline is not None else ()

    if as_json:
        echo_json({"status": "ok", "channel": created.to_dict(), "programs": len(blocks)})
    else:
        typer.echo("Channel created:")
        _echo_channel(created)
        typer.echo(f"  Scheduled programs: {len(blocks)}")


@app.command("delete")
def delete_channel(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Delete a channel and its schedule."""
    as_json = wants_json(ctx, json_output)
    try:
        get_runtime(ctx).service.delete_channel(channel_id)
    except ChannelNotFoundError as e:
        fail(str(e), as_json)
    if as_json:
        echo_json({"status": "ok", "deleted": channel_id})
    else:
        typer.echo(f"Channel deleted: {channel_id}")


@app.command("now")
def now_playing(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show what is airing now and what comes next."""
    as_json = wants_json(ctx, json_output)
    service = get_runtime(ctx).service
    try:
        current = service.current_program(channel_id)
        upcoming = service.next_program(channel_id)
    except ChannelNotFoundError as e:
        fail(str(e), as_json)

    if as_json:
        echo_json(
            {
                "status": "ok",
                "current": current.to_dict() if current else None,
                "next": upcoming.to_dict() if upcoming else None,
            }
        )
        return
    typer.echo("Now:" if current else "Now: nothing scheduled")
    if current:
        typer.echo(_format_block(current))
    if upcoming:
        typer.echo("Next:")
        typer.echo(_format_block(upcoming))


@app.command("schedule")
def show_schedule(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id"),
    hours: float = typer.Option(24, "--hours", help="Range length in hours"),
    start: str | None = typer.Option(None, "--start", help="Range start (ISO-8601, default now)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List the blocks starting within a time range."""
    as_json = wants_json(ctx, json_output)
    try:
        start_time = parse_utc(start) if start else None
    except ValueError as e:
        fail(f"invalid --start: {e}", as_json)
    try:
        blocks = get_runtime(ctx).service.get_schedule(channel_id, start_time, hours)
    except (ChannelNotFoundError, ValidationError) as e:
        fail(str(e), as_json)

    if as_json:
        echo_json({"status": "ok", "programs": [b.to_dict() for b in blocks], "count": len(blocks)})
        return
    if not blocks:
        typer.echo("No programs scheduled in range")
        return
    for block in blocks:
        typer.echo(_format_block(block))


@app.command("regenerate")
def regenerate_schedule(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id"),
    hours: float | None = typer.Option(None, "--hours", help="Hours to generate (default lookahead)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Discard the channel's schedule and rebuild it from now."""
    as_json = wants_json(ctx, json_output)
    try:
        blocks = get_runtime(ctx).service.regenerate_schedule(channel_id, hours)
    except (ChannelNotFoundError, ValidationError) as e:
        fail(str(e), as_json)

    if as_json:
        echo_json({"status": "ok", "programs": [b.to_dict() for b in blocks], "count": len(blocks)})
    else:
        typer.echo(f"Regenerated {len(blocks)} programs for {channel_id}")
