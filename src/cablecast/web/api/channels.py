"""
REST API endpoints for channels and their schedules.

Provides a frontend-agnostic JSON API: channel CRUD, what's on now,
schedule range queries and schedule regeneration.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ...domain.entities import Channel, ContentFilter, ProgrammingMode, parse_utc
from ...infra.exceptions import ChannelNotFoundError, ValidationError
from ...runtime.channel_service import ChannelService

router = APIRouter(prefix="/api/cablecast", tags=["cablecast"])


def get_service(request: Request) -> ChannelService:
    """Get the channel service installed on the application."""
    return request.app.state.service


# ============================================================================
# Pydantic Models for Request/Response
# ============================================================================


class ContentFilterModel(BaseModel):
    """Content filter criteria. Empty lists and null bounds mean no constraint."""
    included_genres: list[str] = Field(default_factory=list)
    excluded_genres: list[str] = Field(default_factory=list)
    included_content_types: list[str] = Field(default_factory=list)
    excluded_content_types: list[str] = Field(default_factory=list)
    min_rating: str | None = None
    max_rating: str | None = None
    min_release_year: int | None = None
    max_release_year: int | None = None
    include_adult_content: bool = False

    def to_domain(self) -> ContentFilter:
        return ContentFilter(**self.model_dump())


class ChannelCreate(BaseModel):
    """Request model for creating or updating a channel."""
    id: str | None = Field(None, description="Channel id (generated when omitted)")
    name: str = Field(..., min_length=1, description="Display name")
    number: int = Field(0, ge=0, description="Numeric channel slot")
    description: str | None = Field(None, description="Human-readable description")
    logo_url: str | None = Field(None, description="Logo URL")
    library_ids: list[str] = Field(default_factory=list, description="Source library ids")
    is_enabled: bool = Field(True, description="Enabled for scheduling")
    programming_type: ProgrammingMode = Field(ProgrammingMode.CONTINUOUS)
    content_filter: ContentFilterModel | None = None

    def to_domain(self) -> Channel:
        return Channel(
            id=self.id or "",
            name=self.name,
            number=self.number,
            description=self.description,
            logo_url=self.logo_url,
            library_ids=list(self.library_ids),
            is_enabled=self.is_enabled,
            programming_mode=self.programming_type,
            content_filter=(
                self.content_filter.to_domain() if self.content_filter is not None else None
            ),
        )


def _not_found(e: ChannelNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _bad_request(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(e))


# ============================================================================
# Channel Endpoints
# ============================================================================


@router.get("/channels")
async def list_channels(service: ChannelService = Depends(get_service)) -> dict[str, Any]:
    """List all channels."""
    channels = [c.to_dict() for c in service.list_channels()]
    return {"status": "ok", "channels": channels, "count": len(channels)}


@router.post("/channels", status_code=201)
async def create_channel(
    channel: ChannelCreate,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Create a channel and generate its initial schedule."""
    try:
        created = service.create_channel(channel.to_domain())
    except ValidationError as e:
        raise _bad_request(e)
    return {"status": "ok", "channel": created.to_dict()}


@router.get("/channels/{channel_id}")
async def get_channel(
    channel_id: str,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Get a channel by ID."""
    try:
        channel = service.get_channel(channel_id)
    except ChannelNotFoundError as e:
        raise _not_found(e)
    return {"status": "ok", "channel": channel.to_dict()}


@router.put("/channels/{channel_id}")
async def update_channel(
    channel_id: str,
    channel: ChannelCreate,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Replace a channel's settings. The id in the path wins."""
    try:
        updated = service.update_channel(channel_id, channel.to_domain())
    except ChannelNotFoundError as e:
        raise _not_found(e)
    except ValidationError as e:
        raise _bad_request(e)
    return {"status": "ok", "channel": updated.to_dict()}


@router.delete("/channels/{channel_id}")
async def delete_channel(
    channel_id: str,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Delete a channel and its timeline."""
    try:
        service.delete_channel(channel_id)
    except ChannelNotFoundError as e:
        raise _not_found(e)
    return {"status": "ok", "deleted": channel_id}


# ============================================================================
# Schedule Endpoints
# ============================================================================


@router.get("/channels/{channel_id}/current")
async def get_current_program(
    channel_id: str,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """The block airing now."""
    try:
        block = service.current_program(channel_id)
    except ChannelNotFoundError as e:
        raise _not_found(e)
    if block is None:
        raise HTTPException(status_code=404, detail="No program currently airing")
    return {"status": "ok", "program": block.to_dict()}


@router.get("/channels/{channel_id}/next")
async def get_next_program(
    channel_id: str,
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """The first block starting after now."""
    try:
        block = service.next_program(channel_id)
    except ChannelNotFoundError as e:
        raise _not_found(e)
    if block is None:
        raise HTTPException(status_code=404, detail="No upcoming program")
    return {"status": "ok", "program": block.to_dict()}


@router.get("/channels/{channel_id}/schedule")
async def get_schedule(
    channel_id: str,
    start_time: datetime | None = Query(None, description="Range start (ISO-8601, default now)"),
    hours: float = Query(24, gt=0, description="Range length in hours"),
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Blocks starting within the requested range."""
    try:
        blocks = service.get_schedule(
            channel_id,
            parse_utc(start_time) if start_time is not None else None,
            hours,
        )
    except ChannelNotFoundError as e:
        raise _not_found(e)
    except ValidationError as e:
        raise _bad_request(e)
    return {"status": "ok", "programs": [b.to_dict() for b in blocks], "count": len(blocks)}


@router.post("/channels/{channel_id}/regenerate-schedule")
async def regenerate_schedule(
    channel_id: str,
    hours: float | None = Query(None, gt=0, description="Hours to generate (default lookahead)"),
    service: ChannelService = Depends(get_service),
) -> dict[str, Any]:
    """Discard the channel's timeline and rebuild it from now."""
    try:
        blocks = service.regenerate_schedule(channel_id, hours)
    except ChannelNotFoundError as e:
        raise _not_found(e)
    except ValidationError as e:
        raise _bad_request(e)
    return {"status": "ok", "programs": [b.to_dict() for b in blocks], "count": len(blocks)}


@router.get("/config")
async def get_configuration(service: ChannelService = Depends(get_service)) -> dict[str, Any]:
    """Effective scheduling options."""
    return {"status": "ok", "config": service.get_configuration()}


@router.get("/health")
async def get_health(request: Request) -> dict[str, Any]:
    """Maintenance health from the last horizon manager pass."""
    manager = getattr(request.app.state, "horizon_manager", None)
    if manager is None:
        return {"status": "ok", "maintenance": None}
    report = manager.get_health_report()
    return {
        "status": "ok" if report.is_healthy else "degraded",
        "maintenance": {
            "running": manager.is_running,
            "last_evaluation": (
                report.last_evaluation.isoformat() if report.last_evaluation else None
            ),
            "channels_evaluated": report.channels_evaluated,
            "channels_extended": report.channels_extended,
            "channels_failed": report.channels_failed,
            "min_buffer_minutes": report.min_buffer_minutes,
            "buffer_threshold_minutes": report.buffer_threshold_minutes,
            "evaluation_interval_seconds": report.evaluation_interval_seconds,
            "is_healthy": report.is_healthy,
        },
    }
