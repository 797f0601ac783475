"""In-memory response cache for Routermon."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Cache categories
CATEGORY_OVERVIEW = "overview"
CATEGORY_BANDWIDTH = "bandwidth"
CATEGORY_QUEUES = "queues"
CATEGORY_QUEUE_COUNTS = "queue_counts"
CATEGORY_INTERFACES = "interfaces"
CATEGORY_RESOURCES = "resources"
CATEGORY_SESSIONS = "sessions"

DEFAULT_TTLS: dict[str, float] = {
    CATEGORY_OVERVIEW: 3.0,
    CATEGORY_BANDWIDTH: 2.0,
    CATEGORY_QUEUES: 10.0,
    CATEGORY_INTERFACES: 5.0,
    CATEGORY_RESOURCES: 3.0,
}


@dataclass
class CacheEntry:
    value: Any
    captured_at: float
    category: str


class ResponseCache:
    """
    Per-device, per-category memoization of device replies.

    Keys are (device_id, category); categories expire independently.
    """

    def __init__(
        self,
        ttls: dict[str, float] | None = None,
        default_ttl: float = 5.0,
        hard_ceiling: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls = dict(DEFAULT_TTLS if ttls is None else ttls)
        self._default_ttl = default_ttl
        self._hard_ceiling = hard_ceiling
        self._clock = clock
        self._entries: dict[tuple[int, str], CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def ttl(self, category: str) -> float:
        """Freshness window for a category."""
        return self._ttls.get(category, self._default_ttl)

    def get(self, device_id: int, category: str) -> Any | None:
        """Return the cached value, or None if missing or no longer fresh."""
        entry = self._entries.get((device_id, category))
        if entry is None:
            return None

        age = self._clock() - entry.captured_at
        if age < self.ttl(category) and age < self._hard_ceiling:
            return entry.value
        return None

    def set(self, device_id: int, category: str, value: Any) -> None:
        """Store a value stamped with the current time, replacing any prior entry."""
        self._entries[(device_id, category)] = CacheEntry(
            value=value,
            captured_at=self._clock(),
            category=category,
        )

    def delete(self, device_id: int, category: str) -> None:
        self._entries.pop((device_id, category), None)

    def sweep(self) -> int:
        """Drop entries older than the hard ceiling. Returns the count removed."""
        now = self._clock()
        stale = [
            key for key, entry in self._entries.items()
            if now - entry.captured_at > self._hard_ceiling
        ]
        for key in stale:
            del self._entries[key]

        if stale:
            logger.debug("Cache sweep removed %d entries", len(stale))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
