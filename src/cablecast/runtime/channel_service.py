"""
Channel service.

The operations the API and CLI layers call: channel CRUD, "what's on
now", schedule range queries and schedule regeneration. Declarative
channel state lives here; timelines live in the TimelineStore. Every
committed mutation is persisted best-effort.
"""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any

from ..domain.entities import Channel, ScheduledBlock
from ..infra.exceptions import (
    ChannelNotFoundError,
    CollaboratorUnavailableError,
    ContractViolationError,
    ValidationError,
)
from ..infra.logging import get_logger
from ..infra.repository import ChannelRecord, ChannelRepository
from .clock import MasterClock
from .schedule_builder import ScheduleBuilder, validate_block_sequence
from .timeline_store import TimelineStore

logger = get_logger(__name__)


def validate_channel(channel: Channel) -> None:
    """Raise ValidationError if the channel's declarative state is malformed."""
    problems: list[str] = []
    if not channel.name or not channel.name.strip():
        problems.append("name is required")
    if channel.number < 0:
        problems.append("number must be non-negative")
    if any(not isinstance(i, str) or not i.strip() for i in channel.library_ids):
        problems.append("library_ids must contain non-empty strings")
    if channel.content_filter is not None:
        problems.extend(channel.content_filter.problems())
    if problems:
        raise ValidationError("; ".join(problems))


class ChannelService:
    """Channel registry plus the schedule operations exposed to callers."""

    def __init__(
        self,
        repository: ChannelRepository,
        builder: ScheduleBuilder,
        store: TimelineStore | None = None,
        master_clock=None,
    ):
        self._repository = repository
        self._builder = builder
        self._store = store or TimelineStore()
        self._clock = master_clock or MasterClock()
        self._channels: dict[str, Channel] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> TimelineStore:
        return self._store

    @property
    def builder(self) -> ScheduleBuilder:
        return self._builder

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Load channels and their timelines from the repository."""
        try:
            records = self._repository.load_all()
        except CollaboratorUnavailableError as e:
            logger.error("channels_load_failed", error=str(e))
            return 0
        with self._lock:
            self._channels.clear()
            for record in records:
                self._channels[record.channel.id] = record.channel
                self._store.load(record.channel.id, record.scheduled_programs)
        logger.info("channels_loaded", count=len(records))
        return len(records)

    def persist(self) -> bool:
        """Save every channel with its current timeline.

        Failures are logged and reported as False; in-memory state is kept.
        """
        with self._lock:
            channels = [copy.deepcopy(c) for c in self._channels.values()]
        records = [
            ChannelRecord(
                channel=channel,
                scheduled_programs=self._blocks_of(channel.id),
            )
            for channel in channels
        ]
        try:
            self._repository.save_all(records)
        except CollaboratorUnavailableError as e:
            logger.error("channels_save_failed", error=str(e))
            return False
        return True

    def on_committed(self, channel_id: str) -> None:
        """Commit hook for the horizon manager."""
        self.persist()

    # ------------------------------------------------------------------
    # Channel CRUD
    # ------------------------------------------------------------------

    def list_channels(self) -> list[Channel]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._channels.values()]

    def get_channel(self, channel_id: str) -> Channel:
        with self._lock:
            channel = self._channels.get(channel_id)
            if channel is None:
                raise ChannelNotFoundError(channel_id)
            return copy.deepcopy(channel)

    def create_channel(self, channel: Channel, *, generate: bool = True) -> Channel:
        """Register a new channel and, if enabled, generate its initial schedule.

        A missing id is generated.
        """
        validate_channel(channel)
        channel = copy.deepcopy(channel)
        if not channel.id:
            channel.id = str(uuid.uuid4())
        with self._lock:
            if channel.id in self._channels:
                raise ValidationError(f"Channel with ID {channel.id} already exists")
            self._channels[channel.id] = channel
            self._store.load(channel.id, [])
        logger.info("channel_created", channel_id=channel.id, channel_name=channel.name)

        if generate and channel.is_enabled:
            self._rebuild(channel, self._builder.config.lookahead_hours)
        self.persist()
        return copy.deepcopy(channel)

    def update_channel(self, channel_id: str, channel: Channel) -> Channel:
        """Replace the declarative state of an existing channel; the timeline is kept."""
        validate_channel(channel)
        channel = copy.deepcopy(channel)
        channel.id = channel_id
        with self._lock:
            if channel_id not in self._channels:
                raise ChannelNotFoundError(channel_id)
            self._channels[channel_id] = channel
        logger.info("channel_updated", channel_id=channel_id, channel_name=channel.name)
        self.persist()
        return copy.deepcopy(channel)

    def delete_channel(self, channel_id: str) -> None:
        with self._lock:
            channel = self._channels.pop(channel_id, None)
            if channel is None:
                raise ChannelNotFoundError(channel_id)
            self._store.discard(channel_id)
        logger.info("channel_deleted", channel_id=channel_id, channel_name=channel.name)
        self.persist()

    # ------------------------------------------------------------------
    # Schedule queries
    # ------------------------------------------------------------------

    def current_program(
        self, channel_id: str, now: datetime | None = None
    ) -> ScheduledBlock | None:
        self._require(channel_id)
        now = now or self._clock.now_utc()
        timeline = self._store.get(channel_id)
        return timeline.current_block(now) if timeline is not None else None

    def next_program(self, channel_id: str, now: datetime | None = None) -> ScheduledBlock | None:
        self._require(channel_id)
        now = now or self._clock.now_utc()
        timeline = self._store.get(channel_id)
        return timeline.next_block(now) if timeline is not None else None

    def get_schedule(
        self,
        channel_id: str,
        start_time: datetime | None = None,
        hours: float = 24,
    ) -> list[ScheduledBlock]:
        """Blocks starting in ``[start_time, start_time + hours)``, ascending."""
        self._require(channel_id)
        if hours <= 0:
            raise ValidationError("hours must be positive")
        start_time = start_time or self._clock.now_utc()
        timeline = self._store.get(channel_id)
        if timeline is None:
            return []
        return timeline.upcoming(start_time, timedelta(hours=hours))

    # ------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------

    def regenerate_schedule(self, channel_id: str, hours: float | None = None) -> list[ScheduledBlock]:
        """Clear the channel's timeline and rebuild it from now."""
        if hours is not None and hours <= 0:
            raise ValidationError("hours must be positive")
        channel = self.get_channel(channel_id)
        blocks = self._rebuild(channel, hours if hours is not None else self._builder.config.lookahead_hours)
        self.persist()
        return blocks

    def get_configuration(self) -> dict[str, Any]:
        config = self._builder.config
        return {
            "enable_commercials": config.enable_commercials,
            "commercial_probability": config.commercial_probability,
            "enable_pre_roll": config.enable_pre_roll,
            "commercial_library_path": config.commercial_library_path,
            "pre_roll_library_path": config.pre_roll_library_path,
            "min_content_duration": config.min_content_duration_minutes,
            "max_content_duration": config.max_content_duration_minutes,
            "channel_buffer_minutes": config.channel_buffer_minutes,
            "lookahead_hours": config.lookahead_hours,
            "retention_hours": config.retention_hours,
            "use_scheduled_programming": config.use_scheduled_programming,
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, channel_id: str) -> None:
        with self._lock:
            if channel_id not in self._channels:
                raise ChannelNotFoundError(channel_id)

    def _blocks_of(self, channel_id: str) -> list[ScheduledBlock]:
        timeline = self._store.get(channel_id)
        return list(timeline.blocks()) if timeline is not None else []

    def _rebuild(self, channel: Channel, hours: float) -> list[ScheduledBlock]:
        """Replace the channel's timeline with a fresh build from now.

        The existing timeline is kept when the batch is invalid, when the
        libraries could not be read, or when the channel was deleted while
        building.
        """
        now = self._clock.now_utc()
        result = self._builder.build(channel, now, hours)
        if result.collaborator_failed:
            logger.warning(
                "schedule_regeneration_skipped",
                channel_id=channel.id,
                unavailable_libraries=result.unavailable_libraries,
            )
            return self._blocks_of(channel.id)
        try:
            validate_block_sequence(result.blocks, channel_id=channel.id, after=now)
        except ContractViolationError as e:
            logger.error("schedule_batch_rejected", channel_id=channel.id, error=str(e))
            return self._blocks_of(channel.id)
        timeline = self._store.get(channel.id)
        if timeline is None:
            return []
        timeline.replace(result.blocks)
        logger.info(
            "schedule_regenerated",
            channel_id=channel.id,
            programs=len(result.blocks),
            no_content=result.no_content,
        )
        return list(result.blocks)
