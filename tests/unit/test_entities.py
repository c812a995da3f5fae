"""Tests for domain entities: durations, block construction and serialisation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from cablecast.domain.entities import (
    FALLBACK_DURATION,
    BlockKind,
    Channel,
    ContentFilter,
    ContentItem,
    ProgrammingMode,
    ScheduledBlock,
    parse_utc,
)

START = datetime(2026, 2, 11, 14, 0, tzinfo=timezone.utc)


class TestContentItem:
    def test_unknown_duration_uses_fallback(self):
        item = ContentItem(id="a", name="A")
        assert item.duration_minutes == 0.0
        assert item.effective_duration == FALLBACK_DURATION

    def test_zero_duration_uses_fallback(self):
        item = ContentItem(id="a", name="A", duration=timedelta(0))
        assert item.effective_duration == timedelta(minutes=30)

    def test_from_dict_reads_library_ticks(self):
        item = ContentItem.from_dict({"id": "a", "name": "A", "run_time_ticks": 36_000_000_000})
        assert item.duration == timedelta(hours=1)

    def test_from_dict_defaults(self):
        item = ContentItem.from_dict({"id": 7, "genres": "Comedy"})
        assert item.id == "7"
        assert item.name == "7"
        assert item.genres == ("Comedy",)
        assert item.kind == "Movie"
        assert item.duration is None


class TestScheduledBlock:
    def test_from_item_content_allows_interstitials(self):
        item = ContentItem(id="m", name="Movie", duration=timedelta(minutes=95), description="d")
        block = ScheduledBlock.from_item(item, START, BlockKind.CONTENT, "ch1")

        assert block.channel_id == "ch1"
        assert block.item_id == "m"
        assert block.title == "Movie"
        assert block.description == "d"
        assert block.end_time == START + timedelta(minutes=95)
        assert block.allow_commercials and block.allow_pre_roll

    def test_from_item_interstitial_disallows_interstitials(self):
        item = ContentItem(id="c", name="Ad", duration=timedelta(seconds=30))
        block = ScheduledBlock.from_item(item, START, BlockKind.COMMERCIAL, "ch1")
        assert not block.allow_commercials
        assert not block.allow_pre_roll

    def test_blocks_get_unique_ids(self):
        item = ContentItem(id="m", name="Movie", duration=timedelta(minutes=30))
        a = ScheduledBlock.from_item(item, START, BlockKind.CONTENT, "ch1")
        b = ScheduledBlock.from_item(item, START, BlockKind.CONTENT, "ch1")
        assert a.id != b.id

    def test_contains_is_half_open(self):
        item = ContentItem(id="m", name="Movie", duration=timedelta(minutes=30))
        block = ScheduledBlock.from_item(item, START, BlockKind.CONTENT, "ch1")
        assert block.contains(START)
        assert block.contains(START + timedelta(minutes=29, seconds=59))
        assert not block.contains(block.end_time)
        assert not block.contains(START - timedelta(microseconds=1))

    def test_dict_keeps_kind_under_type_key(self):
        item = ContentItem(id="p", name="Bumper", duration=timedelta(minutes=1))
        block = ScheduledBlock.from_item(item, START, BlockKind.PRE_ROLL, "ch1")
        data = block.to_dict()
        assert data["type"] == "PreRoll"
        assert ScheduledBlock.from_dict(data) == block


class TestChannel:
    def test_dict_includes_filter_and_mode(self):
        channel = Channel(
            id="ch1",
            name="Westerns",
            number=4,
            library_ids=["movies"],
            programming_mode=ProgrammingMode.SCHEDULED,
            content_filter=ContentFilter(included_genres=["Western"], min_rating="PG"),
        )
        data = channel.to_dict()
        assert data["programming_type"] == "Scheduled"
        assert data["content_filter"]["min_rating"] == "PG"

        restored = Channel.from_dict(data)
        assert restored == channel

    def test_from_dict_defaults(self):
        channel = Channel.from_dict({"name": "Plain"})
        assert channel.id == ""
        assert channel.is_enabled
        assert channel.programming_mode == ProgrammingMode.CONTINUOUS
        assert channel.content_filter is None


class TestContentFilterProblems:
    def test_valid_filter(self):
        assert ContentFilter(min_release_year=1980, max_release_year=1989).problems() == []

    def test_inverted_year_bounds(self):
        problems = ContentFilter(min_release_year=1990, max_release_year=1980).problems()
        assert len(problems) == 1
        assert "min_release_year" in problems[0]

    def test_blank_genre(self):
        assert ContentFilter(included_genres=["  "]).problems()

    def test_non_integer_year_bound(self):
        problems = ContentFilter(min_release_year="1990", max_release_year=1980).problems()
        assert problems == ["min_release_year must be an integer"]

    def test_from_dict_coerces_year_bounds(self):
        f = ContentFilter.from_dict({"min_release_year": "1980", "max_release_year": 1989})
        assert f.min_release_year == 1980
        assert f.max_release_year == 1989
        assert f.problems() == []


class TestParseUtc:
    def test_naive_is_utc(self):
        assert parse_utc("2026-02-11T14:00:00") == START

    def test_offset_is_converted(self):
        assert parse_utc("2026-02-11T15:00:00+01:00") == START
