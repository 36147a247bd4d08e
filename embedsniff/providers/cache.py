"""In-memory TTL cache for aggregate extraction results."""
from __future__ import annotations
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from .base import AggregateResponse

log = logging.getLogger("embedsniff.providers.cache")

DEFAULT_TTL = 15 * 60
DEFAULT_MAX_ENTRIES = 512


@dataclass
class CacheEntry:
    key: str
    value: AggregateResponse
    created_at: float


class ResultCache:
    """
    Maps a normalized request key to a previously computed AggregateResponse.

    Staleness is decided at read time; nothing runs in the background. A stale
    entry is simply treated as a miss and replaced by the next put(). Size is
    bounded by evicting the least recently used key.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, max_entries: int = DEFAULT_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def __bool__(self):
        # An empty cache is still a cache
        return True

    def get(self, key: str) -> Optional[AggregateResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self.ttl:
            log.debug("stale entry for %s", key)
            return None
        self._entries.move_to_end(key)
        return entry.value

    def put(self, key: str, value: AggregateResponse):
        self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("evicted %s", evicted)

    def clear(self):
        self._entries.clear()
