"""Schedule Builder.

Walks the time axis from a start instant for a requested span, placing
pre-roll, main content and commercial blocks back to back. The single
pass never backtracks and never truncates a block, so the last block
may end after the span limit. Every emitted block has a positive
duration (unknown runtimes get the fallback duration), which bounds the
number of iterations by the span divided by the shortest block.

The builder does not touch any timeline: it returns a batch that the
caller publishes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..domain.entities import (
    DEFAULT_CONTENT_KINDS,
    BlockKind,
    Channel,
    ContentItem,
    ScheduledBlock,
)
from ..infra.exceptions import (
    CollaboratorUnavailableError,
    ContractViolationError,
    ValidationError,
)
from .content_filter import apply_content_filter
from .content_selector import ContentSelector
from .library import InterstitialSource, LibraryProvider, NullInterstitialSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchedulerConfig:
    """Scheduling options, frozen from settings at wiring time."""

    enable_commercials: bool = True
    commercial_probability: float = 0.3
    enable_pre_roll: bool = True
    min_content_duration_minutes: float = 5
    max_content_duration_minutes: float = 180
    commercial_library_path: str | None = None
    pre_roll_library_path: str | None = None
    channel_buffer_minutes: int = 60
    lookahead_hours: float = 24
    retention_hours: float = 1
    use_scheduled_programming: bool = True

    def __post_init__(self) -> None:
        problems: list[str] = []
        if not 0.0 <= self.commercial_probability <= 1.0:
            problems.append("commercial_probability must be within 0.0..1.0")
        if self.min_content_duration_minutes > self.max_content_duration_minutes:
            problems.append("min_content_duration_minutes exceeds max_content_duration_minutes")
        if self.lookahead_hours <= 0:
            problems.append("lookahead_hours must be positive")
        if self.channel_buffer_minutes < 0 or self.retention_hours < 0:
            problems.append("buffer and retention must be non-negative")
        if problems:
            raise ValidationError("; ".join(problems))

    @classmethod
    def from_settings(cls, settings) -> SchedulerConfig:
        return cls(
            enable_commercials=settings.enable_commercials,
            commercial_probability=settings.commercial_probability,
            enable_pre_roll=settings.enable_pre_roll,
            min_content_duration_minutes=settings.min_content_duration_minutes,
            max_content_duration_minutes=settings.max_content_duration_minutes,
            commercial_library_path=settings.commercial_library_path,
            pre_roll_library_path=settings.pre_roll_library_path,
            channel_buffer_minutes=settings.channel_buffer_minutes,
            lookahead_hours=settings.lookahead_hours,
            retention_hours=settings.retention_hours,
            use_scheduled_programming=settings.use_scheduled_programming,
        )

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.channel_buffer_minutes)

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)


@dataclass
class BuildResult:
    """Ordered batch of blocks produced by one build run.

    ``no_content`` is set when the channel's content pool was empty, and
    ``unavailable_libraries`` names the libraries that could not be read.
    An empty pool with unreadable libraries is a collaborator failure, not
    a channel with nothing to play.
    """

    channel_id: str
    start_time: datetime
    blocks: list[ScheduledBlock] = field(default_factory=list)
    no_content: bool = False
    unavailable_libraries: list[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    @property
    def end_time(self) -> datetime:
        """End of the last block, or the start instant when empty."""
        if not self.blocks:
            return self.start_time
        return self.blocks[-1].end_time

    @property
    def collaborator_failed(self) -> bool:
        return self.no_content and bool(self.unavailable_libraries)


class ScheduleBuilder:
    """Builds contiguous block batches for a channel."""

    def __init__(
        self,
        library: LibraryProvider,
        selector: ContentSelector,
        config: SchedulerConfig | None = None,
        interstitials: InterstitialSource | None = None,
    ):
        self._library = library
        self._selector = selector
        self._config = config or SchedulerConfig()
        self._interstitials = interstitials or NullInterstitialSource()

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def resolve_content_pool(self, channel: Channel) -> tuple[list[ContentItem], list[str]]:
        """Union of the filtered items of every configured library.

        Items present in several libraries appear once per library.
        Unknown or failing libraries are logged and skipped; the ids of
        the failing ones are returned alongside the pool.
        """
        pool: list[ContentItem] = []
        unavailable: list[str] = []
        for library_id in channel.library_ids:
            try:
                library = self._library.resolve_library(library_id)
                if library is None:
                    logger.warning(
                        "Library %s not found for channel %s", library_id, channel.name
                    )
                    continue
                items = self._library.list_items(
                    library, kinds=DEFAULT_CONTENT_KINDS, recursive=True
                )
            except (CollaboratorUnavailableError, OSError) as e:
                logger.warning(
                    "Library %s unavailable for channel %s: %s", library_id, channel.name, e
                )
                unavailable.append(library_id)
                continue
            pool.extend(apply_content_filter(items, channel.content_filter))
        return pool, unavailable

    def build(self, channel: Channel, start_time: datetime, span_hours: float) -> BuildResult:
        """Generate blocks covering ``[start_time, start_time + span_hours)``.

        Returns an empty result flagged ``no_content`` when the pool is empty,
        and a partial result if content selection runs dry mid-span.
        """
        result = BuildResult(channel_id=channel.id, start_time=start_time)
        pool, unavailable = self.resolve_content_pool(channel)
        result.unavailable_libraries = unavailable
        if not pool:
            logger.warning("No content available for channel %s", channel.name)
            result.no_content = True
            return result

        config = self._config
        cursor = start_time
        limit = start_time + timedelta(hours=span_hours)

        while cursor < limit:
            if config.enable_pre_roll and self._selector.should_insert_pre_roll():
                pre_roll = self._interstitials.resolve(config.pre_roll_library_path)
                if pre_roll is not None:
                    block = ScheduledBlock.from_item(pre_roll, cursor, BlockKind.PRE_ROLL, channel.id)
                    result.blocks.append(block)
                    cursor = block.end_time

            content = self._selector.pick_content(
                pool,
                config.min_content_duration_minutes,
                config.max_content_duration_minutes,
            )
            if content is None:
                break
            block = ScheduledBlock.from_item(content, cursor, BlockKind.CONTENT, channel.id)
            result.blocks.append(block)
            cursor = block.end_time

            if config.enable_commercials and self._selector.should_insert_commercial(
                config.commercial_probability
            ):
                commercial = self._interstitials.resolve(config.commercial_library_path)
                if commercial is not None:
                    block = ScheduledBlock.from_item(
                        commercial, cursor, BlockKind.COMMERCIAL, channel.id
                    )
                    result.blocks.append(block)
                    cursor = block.end_time

        logger.info(
            "Generated schedule with %d programs for channel %s",
            len(result.blocks),
            channel.name,
        )
        return result


def validate_block_sequence(
    blocks: Sequence[ScheduledBlock],
    *,
    channel_id: str | None = None,
    after: datetime | None = None,
) -> None:
    """Check a batch before it is published to a timeline.

    Every block must have ``start < end``, adjacent blocks must meet
    exactly, and when ``after`` is given the batch must start there.
    Raises ContractViolationError listing every violation.
    """
    violations: list[str] = []
    for i, block in enumerate(blocks):
        if block.start_time >= block.end_time:
            violations.append(
                f"block {block.id} has non-positive duration "
                f"({block.start_time.isoformat()} -> {block.end_time.isoformat()})"
            )
        if channel_id is not None and block.channel_id != channel_id:
            violations.append(f"block {block.id} belongs to channel {block.channel_id!r}")
        if i > 0 and blocks[i - 1].end_time != block.start_time:
            prev = blocks[i - 1]
            kind = "gap" if block.start_time > prev.end_time else "overlap"
            violations.append(
                f"{kind} between {prev.id} (end={prev.end_time.isoformat()}) "
                f"and {block.id} (start={block.start_time.isoformat()})"
            )
    if blocks and after is not None and blocks[0].start_time != after:
        violations.append(
            f"batch starts at {blocks[0].start_time.isoformat()}, "
            f"expected {after.isoformat()}"
        )
    if violations:
        raise ContractViolationError("Block batch violates timeline invariants", violations)
