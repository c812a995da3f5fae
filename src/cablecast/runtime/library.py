"""
Media library collaborators.

The scheduling engine only ever reads from the library: it resolves a
library id to a handle, lists the handle's items, and, for interstitials,
resolves a configured library path to a single item. Providers here are
read-only catalogs; a real media server would implement the same
protocols.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from ..domain.entities import DEFAULT_CONTENT_KINDS, ContentItem
from ..infra.exceptions import CollaboratorUnavailableError
from .content_selector import ContentSelector

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LibraryHandle:
    """A resolved library: its items plus the ids of nested child libraries."""

    id: str
    path: str | None = None
    items: tuple[ContentItem, ...] = ()
    children: tuple[str, ...] = field(default_factory=tuple)


@runtime_checkable
class LibraryProvider(Protocol):
    """What the schedule builder needs from the media library."""

    def resolve_library(self, library_id: str) -> LibraryHandle | None:
        """Return the library for ``library_id``, or None if unknown."""
        ...

    def list_items(
        self,
        library: LibraryHandle,
        kinds: Sequence[str] = DEFAULT_CONTENT_KINDS,
        recursive: bool = True,
    ) -> list[ContentItem]:
        """Return the library's items of the given kinds."""
        ...


@runtime_checkable
class InterstitialSource(Protocol):
    """Resolves a pre-roll or commercial item from a library path.

    Returning None is a normal outcome (no interstitial available).
    """

    def resolve(self, library_path: str | None) -> ContentItem | None:
        ...


class StaticLibraryCatalog:
    """In-memory, read-only LibraryProvider."""

    def __init__(self) -> None:
        self._libraries: dict[str, LibraryHandle] = {}

    def add_library(
        self,
        library_id: str,
        items: Iterable[ContentItem],
        *,
        path: str | None = None,
        children: Iterable[str] = (),
    ) -> LibraryHandle:
        handle = LibraryHandle(
            id=library_id,
            path=path,
            items=tuple(items),
            children=tuple(children),
        )
        self._libraries[library_id] = handle
        return handle

    def library_ids(self) -> list[str]:
        return list(self._libraries.keys())

    def resolve_library(self, library_id: str) -> LibraryHandle | None:
        return self._libraries.get(library_id)

    def find_by_path(self, library_path: str) -> LibraryHandle | None:
        """Return the library whose path (or id) equals ``library_path``."""
        for handle in self._libraries.values():
            if handle.path == library_path:
                return handle
        return self._libraries.get(library_path)

    def list_items(
        self,
        library: LibraryHandle,
        kinds: Sequence[str] = DEFAULT_CONTENT_KINDS,
        recursive: bool = True,
    ) -> list[ContentItem]:
        wanted = {k.casefold() for k in kinds} if kinds else None
        result: list[ContentItem] = []
        seen: set[str] = set()
        pending = [library]
        while pending:
            handle = pending.pop(0)
            if handle.id in seen:
                continue
            seen.add(handle.id)
            result.extend(
                item for item in handle.items
                if wanted is None or item.kind.casefold() in wanted
            )
            if not recursive:
                break
            for child_id in handle.children:
                child = self._libraries.get(child_id)
                if child is None:
                    _logger.warning(
                        "Library %s references unknown child library %s",
                        handle.id,
                        child_id,
                    )
                    continue
                pending.append(child)
        return result


class YamlLibraryCatalog(StaticLibraryCatalog):
    """
    StaticLibraryCatalog loaded from a YAML document.

    Expected format:

        libraries:
          movies:
            path: /media/movies
            children: [movies-classic]
            items:
              - id: m-001
                name: The Movie
                duration_minutes: 95
                genres: [Comedy]
                kind: Movie
                year: 1987
                rating: PG
    """

    def __init__(self, catalog_path: Path | str):
        super().__init__()
        self._catalog_path = Path(catalog_path)
        self.reload()

    def reload(self) -> None:
        """Re-read the catalog file, replacing every library."""
        try:
            with open(self._catalog_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CollaboratorUnavailableError(
                f"Failed to load library catalog {self._catalog_path}: {e}"
            ) from e

        self._libraries.clear()
        libraries: dict[str, Any] = data.get("libraries") or {}
        for library_id, library_data in libraries.items():
            library_data = library_data or {}
            items: list[ContentItem] = []
            for item_data in library_data.get("items") or []:
                try:
                    items.append(ContentItem.from_dict(item_data))
                except (KeyError, ValueError, TypeError) as e:
                    _logger.warning(
                        "Skipping invalid item in library %s: %s (error: %s)",
                        library_id,
                        item_data,
                        e,
                    )
            self.add_library(
                str(library_id),
                items,
                path=library_data.get("path"),
                children=[str(c) for c in library_data.get("children") or []],
            )

        _logger.info(
            "Loaded %d libraries from %s",
            len(self._libraries),
            self._catalog_path,
        )


class NullInterstitialSource:
    """InterstitialSource that never has anything to offer."""

    def resolve(self, library_path: str | None) -> ContentItem | None:
        return None


class CatalogInterstitialSource:
    """InterstitialSource picking a random item from a catalog library.

    Interstitial libraries are listed without a kind restriction.
    """

    def __init__(self, catalog: StaticLibraryCatalog, selector: ContentSelector):
        self._catalog = catalog
        self._selector = selector

    def resolve(self, library_path: str | None) -> ContentItem | None:
        if not library_path:
            return None
        handle = self._catalog.find_by_path(library_path)
        if handle is None:
            _logger.debug("Interstitial library not found: %s", library_path)
            return None
        items = self._catalog.list_items(handle, kinds=(), recursive=True)
        return self._selector.pick_any(items)
