"""Horizon Manager: rolling schedule maintenance.

Wall-clock-driven policy enforcer for channel timelines. On every pass,
for each enabled channel, measures the buffered time left after "now";
when it drops below the configured buffer, builds a look-ahead batch
starting at the timeline tail and publishes it, then prunes blocks that
ended before the retention cutoff.

Evaluation via evaluate_once() or a background daemon thread via
start()/stop(). Building happens outside the per-channel lock; the
publish is guarded by the timeline generation, so when two passes race
for the same channel exactly one batch lands and the other is skipped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from ..domain.entities import Channel
from ..infra.exceptions import ContractViolationError
from .schedule_builder import ScheduleBuilder, SchedulerConfig, validate_block_sequence
from .timeline_store import TimelineStore

# Reason / error codes recorded on ExtensionAttempt.
REASON_BUFFER_LOW = "REASON_BUFFER_LOW"
REASON_BUFFER_OK = "REASON_BUFFER_OK"
ERROR_NO_CONTENT = "NO_CONTENT"
ERROR_COLLABORATOR_UNAVAILABLE = "COLLABORATOR_UNAVAILABLE"
ERROR_CONTRACT_VIOLATION = "CONTRACT_VIOLATION"
ERROR_STALE_GENERATION = "STALE_GENERATION"

# Keep the attempt log from growing without bound.
_MAX_ATTEMPT_LOG = 1000


# ---------------------------------------------------------------------------
# Protocols: what HorizonManager needs from upstream layers
# ---------------------------------------------------------------------------

@runtime_checkable
class ChannelSource(Protocol):
    """Supplies the channels to maintain."""

    def list_channels(self) -> list[Channel]:
        ...


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class ExtensionAttempt:
    """Record of one channel's maintenance pass."""
    attempt_id: str
    channel_id: str
    now: datetime
    tail_before: datetime | None
    tail_after: datetime | None
    reason_code: str
    extended: bool
    blocks_added: int = 0
    blocks_pruned: int = 0
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error_code is None


@dataclass
class HorizonHealthReport:
    """Snapshot of maintenance health after a pass."""
    last_evaluation: datetime | None
    channels_evaluated: int
    channels_extended: int
    channels_failed: int
    min_buffer_minutes: float | None
    buffer_threshold_minutes: int
    evaluation_interval_seconds: int
    is_healthy: bool


# ---------------------------------------------------------------------------
# HorizonManager
# ---------------------------------------------------------------------------

class HorizonManager:
    """Keeps every enabled channel's timeline buffered ahead of "now"."""

    def __init__(
        self,
        channels: ChannelSource,
        builder: ScheduleBuilder,
        store: TimelineStore,
        master_clock,  # needs .now_utc() -> datetime
        config: SchedulerConfig | None = None,
        evaluation_interval_seconds: int = 1800,
        on_committed: Callable[[str], None] | None = None,
    ):
        self._channels = channels
        self._builder = builder
        self._store = store
        self._clock = master_clock
        self._config = config or builder.config
        self._eval_interval_s = evaluation_interval_seconds
        self._on_committed = on_committed
        self._logger = logging.getLogger(__name__)

        self._attempt_count = 0
        self._attempt_lock = threading.Lock()
        self._attempt_log: list[ExtensionAttempt] = []
        self._last_report: HorizonHealthReport | None = None

        # Background thread
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def extension_attempt_log(self) -> list[ExtensionAttempt]:
        with self._attempt_lock:
            return list(self._attempt_log)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def get_buffer_remaining(self, channel_id: str) -> timedelta:
        """Scheduled time left after now; zero for an empty or exhausted timeline."""
        now = self._clock.now_utc()
        timeline = self._store.get(channel_id)
        tail = timeline.tail_end() if timeline is not None else None
        if tail is None or tail <= now:
            return timedelta(0)
        return tail - now

    def get_health_report(self) -> HorizonHealthReport:
        if self._last_report is not None:
            return self._last_report
        return HorizonHealthReport(
            last_evaluation=None,
            channels_evaluated=0,
            channels_extended=0,
            channels_failed=0,
            min_buffer_minutes=None,
            buffer_threshold_minutes=self._config.channel_buffer_minutes,
            evaluation_interval_seconds=self._eval_interval_s,
            is_healthy=False,
        )

    # ------------------------------------------------------------------
    # Core evaluation
    # ------------------------------------------------------------------

    def evaluate_once(self) -> HorizonHealthReport:
        """Maintain every enabled channel once.

        A failure on one channel is logged and does not stop the others.
        Stops early between channels once stop() has been requested.
        """
        extended = 0
        failed = 0
        evaluated = 0
        min_buffer: timedelta | None = None

        for channel in self._channels.list_channels():
            if self._stop_event.is_set() and self._thread is not None:
                break
            if not channel.is_enabled:
                continue
            try:
                attempt = self.maintain_channel(channel)
            except Exception:
                self._logger.exception(
                    "HorizonManager: maintenance failed for channel %s", channel.id
                )
                evaluated += 1
                failed += 1
                continue
            if attempt is None:
                continue
            evaluated += 1
            if attempt.extended:
                extended += 1
            if attempt.error_code not in (None, ERROR_STALE_GENERATION):
                failed += 1
            remaining = self.get_buffer_remaining(channel.id)
            if min_buffer is None or remaining < min_buffer:
                min_buffer = remaining

        threshold = self._config.buffer
        report = HorizonHealthReport(
            last_evaluation=self._clock.now_utc(),
            channels_evaluated=evaluated,
            channels_extended=extended,
            channels_failed=failed,
            min_buffer_minutes=(
                round(min_buffer.total_seconds() / 60.0, 2) if min_buffer is not None else None
            ),
            buffer_threshold_minutes=self._config.channel_buffer_minutes,
            evaluation_interval_seconds=self._eval_interval_s,
            is_healthy=failed == 0 and (min_buffer is None or min_buffer >= threshold),
        )
        self._last_report = report

        # Healthy + no extension = steady state -> DEBUG.
        if not report.is_healthy:
            level = logging.WARNING
        elif extended:
            level = logging.INFO
        else:
            level = logging.DEBUG
        self._logger.log(
            level,
            "HorizonManager: healthy=%s channels=%d extended=%d failed=%d "
            "min_buffer=%s threshold=%dm",
            report.is_healthy,
            evaluated,
            extended,
            failed,
            "n/a" if report.min_buffer_minutes is None else f"{report.min_buffer_minutes:.1f}m",
            report.buffer_threshold_minutes,
        )
        return report

    def maintain_channel(self, channel: Channel) -> ExtensionAttempt | None:
        """Extend one channel's timeline if its buffer is low, then prune.

        Returns None without touching the store when the channel has no
        timeline, i.e. it was deleted after the channel list was read.
        """
        now = self._clock.now_utc()
        cutoff = now - self._config.retention
        timeline = self._store.get(channel.id)
        if timeline is None:
            self._logger.debug("HorizonManager: %s has no timeline; skipping", channel.id)
            return None
        snapshot = timeline.snapshot()
        tail = snapshot.tail_end
        remaining = tail - now if tail is not None and tail > now else timedelta(0)

        attempt = ExtensionAttempt(
            attempt_id=self._next_attempt_id(),
            channel_id=channel.id,
            now=now,
            tail_before=tail,
            tail_after=tail,
            reason_code=REASON_BUFFER_OK,
            extended=False,
        )

        if remaining >= self._config.buffer:
            attempt.blocks_pruned = timeline.prune(cutoff)
            if attempt.blocks_pruned:
                self._logger.debug(
                    "HorizonManager: pruned %d blocks from %s",
                    attempt.blocks_pruned, channel.id,
                )
                self._commit(channel.id)
            return self._record(attempt)

        attempt.reason_code = REASON_BUFFER_LOW
        # A tail older than the retention cutoff would be pruned anyway;
        # restart the timeline at now instead of rebuilding the past.
        start = tail if tail is not None and tail >= cutoff else now

        self._logger.info(
            "HorizonManager: extending %s from %s (buffer=%.1fm)",
            channel.id, start.isoformat(), remaining.total_seconds() / 60.0,
        )
        result = self._builder.build(channel, start, self._config.lookahead_hours)

        if result.no_content or not result.blocks:
            if result.collaborator_failed:
                attempt.error_code = ERROR_COLLABORATOR_UNAVAILABLE
                self._logger.warning(
                    "HorizonManager: libraries %s unavailable for %s; keeping timeline",
                    ", ".join(result.unavailable_libraries), channel.id,
                )
            else:
                attempt.error_code = ERROR_NO_CONTENT
            attempt.blocks_pruned = timeline.prune(cutoff)
            if attempt.blocks_pruned:
                self._commit(channel.id)
            return self._record(attempt)

        try:
            validate_block_sequence(result.blocks, channel_id=channel.id, after=start)
        except ContractViolationError as e:
            attempt.error_code = ERROR_CONTRACT_VIOLATION
            self._logger.error(
                "HorizonManager: rejected batch for %s: %s", channel.id, e,
            )
            return self._record(attempt)

        before = len(snapshot.blocks)
        published = timeline.publish_append(
            result.blocks,
            expected_generation=snapshot.generation,
            prune_before=cutoff,
        )
        if not published.ok:
            attempt.error_code = ERROR_STALE_GENERATION
            self._logger.info(
                "HorizonManager: %s already extended by another writer; skipping",
                channel.id,
            )
            return self._record(attempt)

        attempt.extended = True
        attempt.blocks_added = len(result.blocks)
        attempt.blocks_pruned = max(0, before + len(result.blocks) - len(timeline.blocks()))
        attempt.tail_after = result.end_time
        self._logger.info(
            "HorizonManager: %s extended with %d blocks to %s (pruned %d)",
            channel.id, attempt.blocks_added, result.end_time.isoformat(),
            attempt.blocks_pruned,
        )
        self._commit(channel.id)
        return self._record(attempt)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background evaluation thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="HorizonManager",
            daemon=True,
        )
        self._thread.start()
        self._logger.info(
            "HorizonManager: started (interval=%ds)", self._eval_interval_s,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop the background evaluation thread.

        A channel being published when stop is requested finishes its
        publish; no further channels are started.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout if timeout is not None else 30)
            self._thread = None
        self._logger.info("HorizonManager: stopped")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop: evaluate -> sleep -> repeat."""
        while not self._stop_event.is_set():
            try:
                self.evaluate_once()
            except Exception:
                self._logger.exception("HorizonManager: evaluation failed")
            self._stop_event.wait(timeout=self._eval_interval_s)

    def _next_attempt_id(self) -> str:
        with self._attempt_lock:
            self._attempt_count += 1
            return f"ext-{self._attempt_count}"

    def _record(self, attempt: ExtensionAttempt) -> ExtensionAttempt:
        with self._attempt_lock:
            self._attempt_log.append(attempt)
            if len(self._attempt_log) > _MAX_ATTEMPT_LOG:
                del self._attempt_log[: len(self._attempt_log) - _MAX_ATTEMPT_LOG]
        return attempt

    def _commit(self, channel_id: str) -> None:
        if self._on_committed is None:
            return
        try:
            self._on_committed(channel_id)
        except Exception:
            self._logger.exception(
                "HorizonManager: commit hook failed for channel %s", channel_id
            )
