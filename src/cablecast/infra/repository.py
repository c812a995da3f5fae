"""
Channel persistence.

Stores the full list of channels, each with its retained timeline, as a
single JSON document. Saving is best-effort: callers log failures and
keep serving from memory.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ..domain.entities import Channel, ScheduledBlock
from .exceptions import CollaboratorUnavailableError

_logger = logging.getLogger(__name__)


@dataclass
class ChannelRecord:
    """A channel together with its persisted timeline."""

    channel: Channel
    scheduled_programs: list[ScheduledBlock] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.channel.to_dict()
        data["scheduled_programs"] = [b.to_dict() for b in self.scheduled_programs]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ChannelRecord:
        return cls(
            channel=Channel.from_dict(data),
            scheduled_programs=[
                ScheduledBlock.from_dict(b) for b in data.get("scheduled_programs") or []
            ],
        )


class ChannelRepository(Protocol):
    """Protocol for loading and saving channel state."""

    def load_all(self) -> list[ChannelRecord]:
        ...

    def save_all(self, records: list[ChannelRecord]) -> None:
        ...


class JsonChannelRepository:
    """
    ChannelRepository backed by a JSON file.

    Expected JSON format:
    {
      "channels": [
        {
          "id": "classic-movies",
          "name": "Classic Movies",
          "number": 4,
          "library_ids": ["movies"],
          "is_enabled": true,
          "programming_type": "Continuous",
          "content_filter": {"included_genres": ["Western"], ...},
          "scheduled_programs": [{"id": "...", "start_time": "...", ...}]
        }
      ]
    }
    """

    def __init__(self, path: Path | str):
        """
        Initialize the repository.

        Args:
            path: Path to the channels JSON document
        """
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> list[ChannelRecord]:
        """Load every channel; a missing or unreadable file yields an empty list."""
        if not self._path.exists():
            _logger.info("Channel file not found, starting empty: %s", self._path)
            return []

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            _logger.error("Failed to parse channel file %s: %s", self._path, e)
            return []
        except OSError as e:
            _logger.error("Failed to read channel file %s: %s", self._path, e)
            return []

        records: list[ChannelRecord] = []
        for channel_data in data.get("channels", []):
            try:
                record = ChannelRecord.from_dict(channel_data)
                content_filter = record.channel.content_filter
                problems = content_filter.problems() if content_filter is not None else []
                if problems:
                    raise ValueError("; ".join(problems))
                records.append(record)
            except (KeyError, ValueError, TypeError) as e:
                _logger.warning(
                    "Skipping invalid channel: %s (error: %s)",
                    channel_data.get("id", "<unknown>"),
                    e,
                )

        _logger.info("Loaded %d channels from %s", len(records), self._path)
        return records

    def save_all(self, records: list[ChannelRecord]) -> None:
        """Write the whole document atomically (temp file + replace).

        Raises CollaboratorUnavailableError on I/O failure.
        """
        payload = {"channels": [r.to_dict() for r in records]}
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self._path.name}.", dir=self._path.parent
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(payload, f, indent=2)
                    os.replace(tmp_name, self._path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise CollaboratorUnavailableError(
                    f"Failed to write channel file {self._path}: {e}"
                ) from e


class InMemoryChannelRepository:
    """ChannelRepository that keeps serialised documents in memory."""

    def __init__(self, records: list[ChannelRecord] | None = None) -> None:
        self._documents = [r.to_dict() for r in records or []]
        self.save_count = 0
        self.fail_saves = False

    def load_all(self) -> list[ChannelRecord]:
        return [ChannelRecord.from_dict(d) for d in self._documents]

    def save_all(self, records: list[ChannelRecord]) -> None:
        if self.fail_saves:
            raise CollaboratorUnavailableError("in-memory repository configured to fail")
        self._documents = [r.to_dict() for r in records]
        self.save_count += 1
