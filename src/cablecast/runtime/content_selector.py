"""Content Selector.

Picks one admissible item from a channel's content pool and makes the
weighted coin-flips that decide whether interstitials are inserted.
All randomness comes from an injected :class:`RandomSource`; the
selector never seeds or owns a global generator.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Iterable, Sequence
from typing import Protocol, runtime_checkable

from ..domain.entities import ContentItem

# Fixed pre-roll insertion probability, independent of the commercial probability.
PRE_ROLL_PROBABILITY = 0.2


@runtime_checkable
class RandomSource(Protocol):
    """Source of randomness consumed by the selector."""

    def draw(self) -> float:
        """Return a float in [0.0, 1.0)."""
        ...

    def choose_index(self, size: int) -> int:
        """Return an integer in [0, size)."""
        ...


class SystemRandomSource:
    """RandomSource backed by :class:`random.Random`.

    Thread-safe; pass ``seed`` for reproducible runs.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def draw(self) -> float:
        with self._lock:
            return self._random.random()

    def choose_index(self, size: int) -> int:
        if size <= 0:
            raise ValueError("size must be positive")
        with self._lock:
            return self._random.randrange(size)


class SequenceRandomSource:
    """Deterministic RandomSource replaying scripted values.

    ``draws`` feed :meth:`draw`; ``indices`` feed :meth:`choose_index`
    (taken modulo ``size``). Both cycle when exhausted.
    """

    def __init__(
        self,
        draws: Iterable[float] = (0.99,),
        indices: Iterable[int] = (0,),
    ) -> None:
        self._draws = list(draws) or [0.99]
        self._indices = list(indices) or [0]
        self._draw_pos = 0
        self._index_pos = 0
        self._lock = threading.Lock()

    def draw(self) -> float:
        with self._lock:
            value = self._draws[self._draw_pos % len(self._draws)]
            self._draw_pos += 1
            return value

    def choose_index(self, size: int) -> int:
        if size <= 0:
            raise ValueError("size must be positive")
        with self._lock:
            value = self._indices[self._index_pos % len(self._indices)]
            self._index_pos += 1
            return value % size


class ContentSelector:
    """Uniform random content picker with duration narrowing."""

    def __init__(
        self,
        random_source: RandomSource | None = None,
        pre_roll_probability: float = PRE_ROLL_PROBABILITY,
    ) -> None:
        self._random = random_source if random_source is not None else SystemRandomSource()
        self._pre_roll_probability = pre_roll_probability

    @property
    def random_source(self) -> RandomSource:
        return self._random

    def pick_content(
        self,
        pool: Sequence[ContentItem],
        min_duration_minutes: float,
        max_duration_minutes: float,
    ) -> ContentItem | None:
        """Pick one item whose runtime lies within ``[min, max]`` minutes.

        Falls back to the whole pool when no item fits the bounds; returns
        None only when the pool is empty.
        """
        if not pool:
            return None
        candidates = [
            item
            for item in pool
            if min_duration_minutes <= item.duration_minutes <= max_duration_minutes
        ]
        if not candidates:
            candidates = list(pool)
        return candidates[self._random.choose_index(len(candidates))]

    def pick_any(self, pool: Sequence[ContentItem]) -> ContentItem | None:
        """Pick one item uniformly from ``pool`` with no duration narrowing."""
        if not pool:
            return None
        return pool[self._random.choose_index(len(pool))]

    def should_insert_commercial(self, probability: float) -> bool:
        return self._random.draw() < probability

    def should_insert_pre_roll(self) -> bool:
        return self._random.draw() < self._pre_roll_probability
