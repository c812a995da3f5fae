"""Content Filter Evaluator.

Pure predicate deciding whether a library item may be programmed on a
channel. An item is admitted when it satisfies every configured
inclusion axis and violates none of the configured exclusion axes.

Absent or malformed item attributes never match an inclusion axis and
never violate an exclusion axis. ``min_rating``/``max_rating`` and
``include_adult_content`` are carried on the filter but not evaluated:
rating labels ("G", "TV-14", "R", ...) have no numeric order.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..domain.entities import ContentFilter, ContentItem


def _folded(values: Iterable[object] | None) -> set[str]:
    if not values:
        return set()
    return {v.strip().casefold() for v in values if isinstance(v, str) and v.strip()}


def _year_of(item: ContentItem) -> int | None:
    year = item.year
    if isinstance(year, bool) or not isinstance(year, int):
        return None
    return year


def admits(item: ContentItem, content_filter: ContentFilter | None) -> bool:
    """Return True if ``item`` passes ``content_filter``.

    A missing filter admits everything. Never raises.
    """
    if content_filter is None:
        return True

    genres = _folded(item.genres if isinstance(item.genres, (list, tuple, set, frozenset)) else None)
    kind = item.kind.strip().casefold() if isinstance(item.kind, str) else None

    included_genres = _folded(content_filter.included_genres)
    if included_genres and not (genres & included_genres):
        return False

    excluded_genres = _folded(content_filter.excluded_genres)
    if excluded_genres and genres & excluded_genres:
        return False

    included_kinds = _folded(content_filter.included_content_types)
    if included_kinds and kind not in included_kinds:
        return False

    excluded_kinds = _folded(content_filter.excluded_content_types)
    if excluded_kinds and kind is not None and kind in excluded_kinds:
        return False

    min_year = content_filter.min_release_year
    max_year = content_filter.max_release_year
    if min_year is not None or max_year is not None:
        year = _year_of(item)
        if year is None:
            return False
        if min_year is not None and year < min_year:
            return False
        if max_year is not None and year > max_year:
            return False

    return True


def apply_content_filter(
    items: Iterable[ContentItem],
    content_filter: ContentFilter | None,
) -> list[ContentItem]:
    """Return the items admitted by ``content_filter``, preserving order."""
    return [item for item in items if admits(item, content_filter)]
