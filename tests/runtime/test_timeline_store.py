"""Tests for ChannelTimeline and TimelineStore.

Verifies:
- current_block uses half-open intervals
- upcoming returns blocks starting within the window
- prune is idempotent and leaves the generation alone
- guarded publishes fail on a stale generation
- seam diagnostics report gaps and overlaps
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from cablecast.domain.entities import ScheduledBlock
from cablecast.runtime.timeline_store import (
    STALE_GENERATION,
    ChannelTimeline,
    TimelineStore,
    find_seam_violations,
)

T0 = datetime(2026, 2, 11, 14, 0, tzinfo=timezone.utc)
CHANNEL = "test-channel"


def _make_block(index: int, start: datetime | None = None, minutes: int = 30) -> ScheduledBlock:
    """Create a 30-minute block at T0 + index * 30 minutes."""
    if start is None:
        start = T0 + timedelta(minutes=30 * index)
    return ScheduledBlock(
        id=f"BLOCK-{index}",
        channel_id=CHANNEL,
        item_id=f"item-{index}",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        title=f"Program {index}",
    )


def _make_timeline(count: int = 4) -> ChannelTimeline:
    return ChannelTimeline(CHANNEL, [_make_block(i) for i in range(count)])


class TestCurrentBlock:
    def test_start_instant_belongs_to_block(self):
        timeline = _make_timeline()
        assert timeline.current_block(T0).id == "BLOCK-0"

    def test_end_instant_belongs_to_next_block(self):
        timeline = _make_timeline()
        assert timeline.current_block(T0 + timedelta(minutes=30)).id == "BLOCK-1"

    def test_inside_block(self):
        timeline = _make_timeline()
        assert timeline.current_block(T0 + timedelta(minutes=75)).id == "BLOCK-2"

    def test_before_first_and_after_last(self):
        timeline = _make_timeline()
        assert timeline.current_block(T0 - timedelta(seconds=1)) is None
        assert timeline.current_block(T0 + timedelta(hours=2)) is None

    def test_gap_has_no_current_block(self):
        timeline = ChannelTimeline(
            CHANNEL,
            [_make_block(0), _make_block(1, start=T0 + timedelta(hours=1))],
        )
        assert timeline.current_block(T0 + timedelta(minutes=45)) is None

    def test_empty_timeline(self):
        assert ChannelTimeline(CHANNEL).current_block(T0) is None


class TestNextBlock:
    def test_first_block_starting_after_now(self):
        timeline = _make_timeline()
        assert timeline.next_block(T0).id == "BLOCK-1"
        assert timeline.next_block(T0 - timedelta(minutes=1)).id == "BLOCK-0"

    def test_none_at_end(self):
        timeline = _make_timeline()
        assert timeline.next_block(T0 + timedelta(minutes=95)) is None


class TestUpcoming:
    def test_window_is_half_open_on_start(self):
        timeline = _make_timeline()
        blocks = timeline.upcoming(T0 + timedelta(minutes=30), timedelta(hours=1))
        assert [b.id for b in blocks] == ["BLOCK-1", "BLOCK-2"]

    def test_block_in_progress_is_excluded(self):
        timeline = _make_timeline()
        blocks = timeline.upcoming(T0 + timedelta(minutes=10), timedelta(hours=1))
        assert [b.id for b in blocks] == ["BLOCK-1", "BLOCK-2"]

    def test_store_pass_through_uses_hours(self):
        store = TimelineStore()
        store.load(CHANNEL, [_make_block(i) for i in range(4)])
        assert len(store.upcoming(CHANNEL, T0, 24)) == 4


class TestPrune:
    def test_removes_blocks_ended_before_cutoff(self):
        timeline = _make_timeline()
        removed = timeline.prune(T0 + timedelta(minutes=61))
        assert removed == 2
        assert [b.id for b in timeline.blocks()] == ["BLOCK-2", "BLOCK-3"]

    def test_block_ending_at_cutoff_is_kept(self):
        timeline = _make_timeline()
        assert timeline.prune(T0 + timedelta(minutes=30)) == 0
        assert len(timeline.blocks()) == 4

    def test_is_idempotent(self):
        timeline = _make_timeline()
        cutoff = T0 + timedelta(minutes=90)
        timeline.prune(cutoff)
        snapshot = timeline.blocks()
        assert timeline.prune(cutoff) == 0
        assert timeline.blocks() == snapshot

    def test_does_not_bump_generation(self):
        timeline = _make_timeline()
        generation = timeline.generation
        timeline.prune(T0 + timedelta(hours=1))
        assert timeline.generation == generation


class TestPublish:
    def test_append_bumps_generation(self):
        timeline = _make_timeline(2)
        before = timeline.generation
        timeline.append([_make_block(2), _make_block(3)])
        assert timeline.generation == before + 1
        assert timeline.tail_end() == T0 + timedelta(hours=2)

    def test_guarded_publish_succeeds_with_current_generation(self):
        timeline = _make_timeline(2)
        snapshot = timeline.snapshot()
        result = timeline.publish_append([_make_block(2)], expected_generation=snapshot.generation)
        assert result.ok
        assert result.generation == snapshot.generation + 1
        assert len(timeline.blocks()) == 3

    def test_guarded_publish_rejects_stale_generation(self):
        timeline = _make_timeline(2)
        snapshot = timeline.snapshot()
        timeline.append([_make_block(2)])

        result = timeline.publish_append([_make_block(3)], expected_generation=snapshot.generation)
        assert not result.ok
        assert result.error_code == STALE_GENERATION
        assert [b.id for b in timeline.blocks()] == ["BLOCK-0", "BLOCK-1", "BLOCK-2"]

    def test_publish_with_prune_is_one_swap(self):
        timeline = _make_timeline(2)
        snapshot = timeline.snapshot()
        timeline.publish_append(
            [_make_block(2)],
            expected_generation=snapshot.generation,
            prune_before=T0 + timedelta(minutes=45),
        )
        assert [b.id for b in timeline.blocks()] == ["BLOCK-1", "BLOCK-2"]

    def test_replace_discards_everything(self):
        timeline = _make_timeline()
        before = timeline.generation
        timeline.replace([_make_block(9)])
        assert [b.id for b in timeline.blocks()] == ["BLOCK-9"]
        assert timeline.generation == before + 1

    def test_snapshot_is_not_affected_by_later_writes(self):
        timeline = _make_timeline(2)
        snapshot = timeline.snapshot()
        timeline.append([_make_block(2)])
        assert len(snapshot.blocks) == 2
        assert snapshot.tail_end == T0 + timedelta(hours=1)


class TestTimelineStore:
    def test_timeline_created_on_demand(self):
        store = TimelineStore()
        assert store.timeline("new").blocks() == ()
        assert store.channel_ids() == ["new"]

    def test_lookups_never_create_timelines(self):
        store = TimelineStore()
        assert store.get("absent") is None
        assert store.current_block("absent", T0) is None
        assert store.upcoming("absent", T0, 24) == []
        assert store.prune("absent", T0) == 0
        assert store.channel_ids() == []

    def test_load_sorts_blocks(self):
        store = TimelineStore()
        store.load(CHANNEL, [_make_block(2), _make_block(0), _make_block(1)])
        assert [b.id for b in store.timeline(CHANNEL).blocks()] == ["BLOCK-0", "BLOCK-1", "BLOCK-2"]

    def test_discard(self):
        store = TimelineStore()
        store.append(CHANNEL, [_make_block(0)])
        store.discard(CHANNEL)
        assert store.channel_ids() == []
        assert store.current_block(CHANNEL, T0) is None


class TestSeamViolations:
    def test_contiguous_has_none(self):
        assert find_seam_violations([_make_block(i) for i in range(3)]) == []

    def test_gap_and_overlap(self):
        blocks = [
            _make_block(0),
            _make_block(1, start=T0 + timedelta(minutes=40)),
            _make_block(2, start=T0 + timedelta(minutes=60)),
        ]
        violations = find_seam_violations(blocks)
        assert [v.delta for v in violations] == [timedelta(minutes=10), timedelta(minutes=-10)]
