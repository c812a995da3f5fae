"""
Global test configuration for CableCast.

This module provides global pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from cablecast.domain.entities import ContentItem  # noqa: E402
from cablecast.infra.exceptions import CollaboratorUnavailableError  # noqa: E402
from cablecast.runtime.clock import ControllableMasterClock  # noqa: E402
from cablecast.runtime.library import StaticLibraryCatalog  # noqa: E402

EPOCH = datetime(2026, 2, 11, 14, 0, 0, tzinfo=timezone.utc)


def _make_item(item_id, minutes=30, *, genres=(), kind="Movie", year=None, name=None):
    """Create a ContentItem; ``minutes=None`` means unknown runtime."""
    return ContentItem(
        id=item_id,
        name=name or f"Title {item_id}",
        duration=timedelta(minutes=minutes) if minutes is not None else None,
        genres=tuple(genres),
        kind=kind,
        year=year,
    )


@pytest.fixture
def clock() -> ControllableMasterClock:
    return ControllableMasterClock(epoch=EPOCH)


@pytest.fixture
def catalog() -> StaticLibraryCatalog:
    """Movies library of 30/45/60 minute items plus small interstitial libraries."""
    catalog = StaticLibraryCatalog()
    catalog.add_library(
        "movies",
        [_make_item("m30", 30), _make_item("m45", 45), _make_item("m60", 60)],
        path="/media/movies",
    )
    catalog.add_library(
        "ads",
        [_make_item("ad1", 1, kind="Video")],
        path="/media/commercials",
    )
    catalog.add_library(
        "bumpers",
        [_make_item("pre1", 2, kind="Video")],
        path="/media/preroll",
    )
    return catalog


class SwitchableCatalog:
    """Wraps a catalog; while ``available`` is False every lookup raises."""

    def __init__(self, inner: StaticLibraryCatalog):
        self._inner = inner
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise CollaboratorUnavailableError("media library offline")

    def resolve_library(self, library_id):
        self._check()
        return self._inner.resolve_library(library_id)

    def find_by_path(self, library_path):
        self._check()
        return self._inner.find_by_path(library_path)

    def list_items(self, library, **kwargs):
        self._check()
        return self._inner.list_items(library, **kwargs)


@pytest.fixture
def switchable_catalog(catalog) -> SwitchableCatalog:
    return SwitchableCatalog(catalog)
