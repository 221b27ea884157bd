"""Shared primitives for the generators and recommenders.

* :func:`sample_window` picks a random, back-adjusted window of a pool.
* :func:`rank_topics` turns topic occurrences into a frequency ranking.
* :class:`Accumulator` is the per-run dedup set plus the ordered output.
* :class:`ResultSink` persists the growing output on a best-effort basis.
"""

import asyncio
import logging
import math
import random
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Sequence

from ..errors import InvalidArgument, OutOfRange

logger = logging.getLogger(__name__)

_default_rng = random.Random()


def sample_window(pool_length: int, window: int, rng: random.Random | None = None) -> range:
    """Return a random contiguous window of ``range(pool_length)``.

    The start is drawn as ``floor(random * N + 1)``, so it lands in
    ``[1, N]`` and never on 0 unless the back-adjustment puts it there.
    When the window would run past the end, the start is shifted back by
    the window size (floored at 0) and the end is clamped to the pool.
    An empty pool yields an empty range.
    """
    if pool_length <= 0 or window <= 0:
        return range(0)
    rng = rng or _default_rng
    start = math.floor(rng.random() * pool_length + 1)
    if start + window >= pool_length:
        start = max(start - window, 0)
    return range(start, min(start + window, pool_length))


def rotated(items: Sequence, rng: random.Random | None = None) -> list:
    """Return *items* scanned forward from a random index, wrapping to the start."""
    if not items:
        return []
    rng = rng or _default_rng
    start = math.floor(rng.random() * len(items) + 1)
    if start == len(items):
        start -= 1
    return list(items[start:]) + list(items[:start])


def rank_topics(occurrences: Iterable[str | None]) -> list[tuple[str, int]]:
    """Count topic occurrences and sort them by descending frequency.

    Blank and missing topic names are not counted.  Ties keep the order in
    which the topics were first seen.
    """
    counts = Counter(
        topic for topic in occurrences
        if isinstance(topic, str) and topic.strip()
    )
    return counts.most_common()


class Accumulator:
    """Ordered results of one generation run, with the ids already used.

    ``seen`` ids (e.g. pins from the user's own history) are skipped without
    being emitted.
    """

    def __init__(self):
        self.items: list = []
        self._emitted: set[str] = set()
        self._seen: set[str] = set()

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id) -> bool:
        return item_id in self._emitted

    def mark_seen(self, item_id) -> None:
        self._seen.add(item_id)

    def is_seen(self, item_id) -> bool:
        return item_id in self._seen or item_id in self._emitted

    def add(self, item_id, item) -> bool:
        """Append *item* unless *item_id* was already emitted."""
        if item_id in self._emitted:
            return False
        self._emitted.add(item_id)
        self.items.append(item)
        return True


class ResultSink:
    """Best-effort writer of a run's partial results.

    Each ``flush`` overwrites the target field with everything accumulated
    so far.  Write failures are logged and swallowed: the run carries on
    with its in-memory state, so the reported total may exceed what was
    durably stored.
    """

    def __init__(self, write: Callable[[list], Awaitable[None]], label: str):
        self._write = write
        self.label = label
        self.failures = 0

    async def flush(self, items: list) -> None:
        try:
            await self._write(list(items))
        except Exception:
            self.failures += 1
            logger.exception("Failed to persist %d items for %s", len(items), self.label)


def cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def page(items: Sequence, limit: int, offset: int) -> list:
    """Return ``items[offset:offset + limit]``, which must be fully available."""
    if limit < 0 or offset < 0:
        raise InvalidArgument("limit and offset must not be negative")
    if offset + limit > len(items):
        raise OutOfRange("invalid offset limit || not enough data")
    return list(items[offset:offset + limit])
