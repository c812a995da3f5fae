"""
Domain entities for CableCast.

Channels, content filters, scheduled blocks and the read-only content
item view supplied by the media library. All of them serialise to plain
dicts so the persistence layer can store a channel document as JSON.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

# Duration given to items whose runtime is unknown or zero.
FALLBACK_DURATION = timedelta(minutes=30)

# Item kinds pulled from a library when resolving a channel's content pool.
MOVIE = "Movie"
EPISODE = "Episode"
DEFAULT_CONTENT_KINDS: tuple[str, ...] = (MOVIE, EPISODE)

_TICKS_PER_SECOND = 10_000_000


class ProgrammingMode(str, Enum):
    """How a channel is programmed."""

    CONTINUOUS = "Continuous"
    SCHEDULED = "Scheduled"


class BlockKind(str, Enum):
    """Kind of a scheduled block.

    FILLER is part of the model but never produced by the schedule builder.
    """

    CONTENT = "Content"
    COMMERCIAL = "Commercial"
    PRE_ROLL = "PreRoll"
    FILLER = "Filler"


def parse_utc(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC.
    """
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _duration_from_dict(data: dict[str, Any]) -> timedelta | None:
    """Accept duration as minutes, seconds or library ticks."""
    if data.get("duration_minutes") is not None:
        return timedelta(minutes=float(data["duration_minutes"]))
    if data.get("duration_seconds") is not None:
        return timedelta(seconds=float(data["duration_seconds"]))
    if data.get("run_time_ticks") is not None:
        return timedelta(seconds=int(data["run_time_ticks"]) / _TICKS_PER_SECOND)
    return None


@dataclass(frozen=True)
class ContentItem:
    """Read-only snapshot of a library item.

    ``duration`` is None when the library does not know the runtime.
    """

    id: str
    name: str
    duration: timedelta | None = None
    description: str | None = None
    genres: tuple[str, ...] = ()
    kind: str = MOVIE
    year: int | None = None
    rating: str | None = None

    @property
    def duration_minutes(self) -> float:
        """Runtime in minutes, 0.0 when unknown."""
        if self.duration is None:
            return 0.0
        return self.duration.total_seconds() / 60.0

    @property
    def effective_duration(self) -> timedelta:
        """Runtime used for scheduling; unknown or non-positive becomes the fallback."""
        if self.duration is None or self.duration <= timedelta(0):
            return FALLBACK_DURATION
        return self.duration

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentItem:
        genres = data.get("genres") or ()
        if isinstance(genres, str):
            genres = (genres,)
        year = data.get("year")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or str(data["id"]),
            duration=_duration_from_dict(data),
            description=data.get("description"),
            genres=tuple(str(g) for g in genres),
            kind=data.get("kind") or MOVIE,
            year=int(year) if year is not None else None,
            rating=data.get("rating"),
        )


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


@dataclass
class ContentFilter:
    """Declarative inclusion/exclusion criteria for a channel's content.

    Empty sets and None bounds mean "no constraint on that axis".
    Rating bounds and the adult-content flag are carried but not evaluated.
    """

    included_genres: list[str] = field(default_factory=list)
    excluded_genres: list[str] = field(default_factory=list)
    included_content_types: list[str] = field(default_factory=list)
    excluded_content_types: list[str] = field(default_factory=list)
    min_rating: str | None = None
    max_rating: str | None = None
    min_release_year: int | None = None
    max_release_year: int | None = None
    include_adult_content: bool = False

    def problems(self) -> list[str]:
        """Return descriptions of malformed criteria (empty when valid)."""
        problems: list[str] = []
        years_valid = True
        for name in ("min_release_year", "max_release_year"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                problems.append(f"{name} must be an integer")
                years_valid = False
        if (
            years_valid
            and self.min_release_year is not None
            and self.max_release_year is not None
            and self.min_release_year > self.max_release_year
        ):
            problems.append(
                f"min_release_year {self.min_release_year} is after "
                f"max_release_year {self.max_release_year}"
            )
        for name in (
            "included_genres",
            "excluded_genres",
            "included_content_types",
            "excluded_content_types",
        ):
            if any(not isinstance(v, str) or not v.strip() for v in getattr(self, name)):
                problems.append(f"{name} must contain non-empty strings")
        return problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "included_genres": list(self.included_genres),
            "excluded_genres": list(self.excluded_genres),
            "included_content_types": list(self.included_content_types),
            "excluded_content_types": list(self.excluded_content_types),
            "min_rating": self.min_rating,
            "max_rating": self.max_rating,
            "min_release_year": self.min_release_year,
            "max_release_year": self.max_release_year,
            "include_adult_content": self.include_adult_content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentFilter:
        return cls(
            included_genres=list(data.get("included_genres") or []),
            excluded_genres=list(data.get("excluded_genres") or []),
            included_content_types=list(data.get("included_content_types") or []),
            excluded_content_types=list(data.get("excluded_content_types") or []),
            min_rating=data.get("min_rating"),
            max_rating=data.get("max_rating"),
            min_release_year=_optional_int(data.get("min_release_year")),
            max_release_year=_optional_int(data.get("max_release_year")),
            include_adult_content=bool(data.get("include_adult_content", False)),
        )


@dataclass(frozen=True)
class ScheduledBlock:
    """One contiguous unit of programming time, ``[start_time, end_time)``.

    Blocks are snapshots: title and description are copied from the source
    item when the block is created and never updated afterwards.
    """

    id: str
    channel_id: str
    item_id: str
    start_time: datetime
    end_time: datetime
    title: str
    description: str | None = None
    kind: BlockKind = BlockKind.CONTENT
    allow_commercials: bool = True
    allow_pre_roll: bool = True

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def contains(self, instant: datetime) -> bool:
        """Half-open containment: ``start <= instant < end``."""
        return self.start_time <= instant < self.end_time

    @classmethod
    def from_item(
        cls,
        item: ContentItem,
        start_time: datetime,
        kind: BlockKind,
        channel_id: str,
    ) -> ScheduledBlock:
        """Create a block for ``item`` starting at ``start_time``.

        Only CONTENT blocks are eligible for interstitials.
        """
        is_content = kind == BlockKind.CONTENT
        return cls(
            id=str(uuid.uuid4()),
            channel_id=channel_id,
            item_id=item.id,
            start_time=start_time,
            end_time=start_time + item.effective_duration,
            title=item.name,
            description=item.description,
            kind=kind,
            allow_commercials=is_content,
            allow_pre_roll=is_content,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "item_id": self.item_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "title": self.title,
            "description": self.description,
            "type": self.kind.value,
            "allow_commercials": self.allow_commercials,
            "allow_pre_roll": self.allow_pre_roll,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledBlock:
        return cls(
            id=data["id"],
            channel_id=data["channel_id"],
            item_id=data["item_id"],
            start_time=parse_utc(data["start_time"]),
            end_time=parse_utc(data["end_time"]),
            title=data.get("title", ""),
            description=data.get("description"),
            kind=BlockKind(data.get("type", BlockKind.CONTENT.value)),
            allow_commercials=bool(data.get("allow_commercials", True)),
            allow_pre_roll=bool(data.get("allow_pre_roll", True)),
        )


@dataclass
class Channel:
    """Declarative state of a virtual broadcast channel.

    The channel's timeline is owned by the timeline store, keyed by ``id``;
    it is not an attribute of this object.
    """

    id: str
    name: str
    number: int = 0
    description: str | None = None
    logo_url: str | None = None
    library_ids: list[str] = field(default_factory=list)
    is_enabled: bool = True
    programming_mode: ProgrammingMode = ProgrammingMode.CONTINUOUS
    content_filter: ContentFilter | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "number": self.number,
            "description": self.description,
            "logo_url": self.logo_url,
            "library_ids": list(self.library_ids),
            "is_enabled": self.is_enabled,
            "programming_type": self.programming_mode.value,
            "content_filter": (
                self.content_filter.to_dict() if self.content_filter is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Channel:
        filter_data = data.get("content_filter")
        return cls(
            id=data.get("id") or "",
            name=data["name"],
            number=int(data.get("number", 0)),
            description=data.get("description"),
            logo_url=data.get("logo_url"),
            library_ids=[str(i) for i in data.get("library_ids") or []],
            is_enabled=bool(data.get("is_enabled", True)),
            programming_mode=ProgrammingMode(
                data.get("programming_type", ProgrammingMode.CONTINUOUS.value)
            ),
            content_filter=ContentFilter.from_dict(filter_data) if filter_data else None,
        )
