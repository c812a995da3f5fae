"""Channel Timeline Store.

Owns each channel's ordered sequence of scheduled blocks, keyed by
channel id. Writers (the channel service and the horizon manager)
serialise on a per-channel lock; readers never take it. Blocks are
published as an immutable tuple and every write swaps in a whole new
tuple, so a reader always sees the timeline before or after a batch,
never halfway through one.

The store trusts its callers on ordering: appended batches must already
be ascending and continue from the current tail.
"""

from __future__ import annotations

import bisect
import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..domain.entities import ScheduledBlock

logger = logging.getLogger(__name__)

STALE_GENERATION = "STALE_GENERATION"


@dataclass(frozen=True)
class TimelineSnapshot:
    """Point-in-time view of one channel's timeline."""

    channel_id: str
    generation: int
    blocks: tuple[ScheduledBlock, ...]

    @property
    def tail_end(self) -> datetime | None:
        """End of the last block, or None when the timeline is empty."""
        if not self.blocks:
            return None
        return self.blocks[-1].end_time


@dataclass
class PublishResult:
    """Result of a guarded publish."""

    ok: bool
    generation: int
    error_code: str | None = None


@dataclass
class SeamViolation:
    """Record of a contiguity violation between adjacent blocks."""

    left_block_id: str
    left_end: datetime
    right_block_id: str
    right_start: datetime

    @property
    def delta(self) -> timedelta:
        """right_start - left_end; positive is a gap, negative an overlap."""
        return self.right_start - self.left_end


class ChannelTimeline:
    """Ordered blocks of a single channel.

    ``generation`` increases on every publish that moves the tail
    (append, replace). Pruning only drops the head and leaves it alone.
    """

    def __init__(self, channel_id: str, blocks: Iterable[ScheduledBlock] = ()) -> None:
        self.channel_id = channel_id
        self._blocks: tuple[ScheduledBlock, ...] = tuple(blocks)
        self._generation = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read (lock-free snapshots)
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> TimelineSnapshot:
        # Read the pair under the lock so generation matches the blocks.
        with self._lock:
            return TimelineSnapshot(self.channel_id, self._generation, self._blocks)

    def blocks(self) -> tuple[ScheduledBlock, ...]:
        return self._blocks

    def tail_end(self) -> datetime | None:
        blocks = self._blocks
        return blocks[-1].end_time if blocks else None

    def current_block(self, now: datetime) -> ScheduledBlock | None:
        """Return the block with ``start <= now < end``, or None."""
        blocks = self._blocks
        starts = [b.start_time for b in blocks]
        idx = bisect.bisect_right(starts, now) - 1
        if idx < 0:
            return None
        block = blocks[idx]
        return block if block.contains(now) else None

    def next_block(self, now: datetime) -> ScheduledBlock | None:
        """Return the first block starting strictly after ``now``."""
        blocks = self._blocks
        starts = [b.start_time for b in blocks]
        idx = bisect.bisect_right(starts, now)
        return blocks[idx] if idx < len(blocks) else None

    def upcoming(self, start: datetime, horizon: timedelta) -> list[ScheduledBlock]:
        """Return blocks whose start lies in ``[start, start + horizon)``."""
        end = start + horizon
        return [b for b in self._blocks if start <= b.start_time < end]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append(self, blocks: Sequence[ScheduledBlock]) -> int:
        """Append a batch after the current tail. Returns the new generation."""
        with self._lock:
            return self._append_locked(blocks)

    def publish_append(
        self,
        blocks: Sequence[ScheduledBlock],
        expected_generation: int,
        *,
        prune_before: datetime | None = None,
    ) -> PublishResult:
        """Append only if no other writer moved the tail since ``expected_generation``.

        With ``prune_before`` the append and a prune at that cutoff are
        published as one swap.
        """
        with self._lock:
            if self._generation != expected_generation:
                return PublishResult(
                    ok=False,
                    generation=self._generation,
                    error_code=STALE_GENERATION,
                )
            generation = self._append_locked(blocks)
            if prune_before is not None:
                self._blocks = tuple(b for b in self._blocks if not b.end_time < prune_before)
            return PublishResult(ok=True, generation=generation)

    def replace(self, blocks: Sequence[ScheduledBlock]) -> int:
        """Discard every block and publish ``blocks`` in their place."""
        with self._lock:
            self._blocks = tuple(blocks)
            self._generation += 1
            return self._generation

    def prune(self, cutoff: datetime) -> int:
        """Remove every block with ``end < cutoff``. Returns the number removed."""
        with self._lock:
            kept = tuple(b for b in self._blocks if not b.end_time < cutoff)
            removed = len(self._blocks) - len(kept)
            if removed:
                self._blocks = kept
            return removed

    def _append_locked(self, blocks: Sequence[ScheduledBlock]) -> int:
        if blocks:
            self._blocks = self._blocks + tuple(blocks)
        self._generation += 1
        return self._generation


class TimelineStore:
    """Per-channel timelines indexed by channel id. Thread-safe."""

    def __init__(self) -> None:
        self._timelines: dict[str, ChannelTimeline] = {}
        self._lock = threading.Lock()

    def get(self, channel_id: str) -> ChannelTimeline | None:
        """Return the channel's timeline, or None if it has none."""
        with self._lock:
            return self._timelines.get(channel_id)

    def timeline(self, channel_id: str) -> ChannelTimeline:
        """Return the channel's timeline, creating an empty one if needed."""
        with self._lock:
            timeline = self._timelines.get(channel_id)
            if timeline is None:
                timeline = ChannelTimeline(channel_id)
                self._timelines[channel_id] = timeline
            return timeline

    def load(self, channel_id: str, blocks: Iterable[ScheduledBlock]) -> ChannelTimeline:
        """Install a timeline restored from persistence, replacing any existing one."""
        ordered = sorted(blocks, key=lambda b: b.start_time)
        timeline = ChannelTimeline(channel_id, ordered)
        with self._lock:
            self._timelines[channel_id] = timeline
        return timeline

    def discard(self, channel_id: str) -> None:
        with self._lock:
            self._timelines.pop(channel_id, None)

    def channel_ids(self) -> list[str]:
        with self._lock:
            return list(self._timelines.keys())

    # Convenience pass-throughs keyed by channel id.

    def current_block(self, channel_id: str, now: datetime) -> ScheduledBlock | None:
        timeline = self.get(channel_id)
        return timeline.current_block(now) if timeline is not None else None

    def upcoming(
        self, channel_id: str, now: datetime, horizon_hours: float
    ) -> list[ScheduledBlock]:
        timeline = self.get(channel_id)
        if timeline is None:
            return []
        return timeline.upcoming(now, timedelta(hours=horizon_hours))

    def append(self, channel_id: str, blocks: Sequence[ScheduledBlock]) -> int:
        return self.timeline(channel_id).append(blocks)

    def prune(self, channel_id: str, cutoff: datetime) -> int:
        timeline = self.get(channel_id)
        return timeline.prune(cutoff) if timeline is not None else 0


def find_seam_violations(blocks: Sequence[ScheduledBlock]) -> list[SeamViolation]:
    """Return every gap or overlap between adjacent blocks.

    Batches appended by separate runs may legitimately leave a gap when the
    timeline ran dry before an extension; this is a diagnostic, not a check.
    """
    violations: list[SeamViolation] = []
    for left, right in zip(blocks, blocks[1:]):
        if left.end_time != right.start_time:
            violations.append(
                SeamViolation(
                    left_block_id=left.id,
                    left_end=left.end_time,
                    right_block_id=right.id,
                    right_start=right.start_time,
                )
            )
    return violations
