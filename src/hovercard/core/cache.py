"""Bounded in-memory cache of preview records."""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from .models import PreviewRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 200


class PreviewCache:
    """Preview records keyed by URL.

    - LRU eviction once ``max_entries`` is exceeded
    - Optional time-to-live (``ttl_seconds`` of 0 disables expiry)

    Lives for the session only; nothing is written to disk.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[PreviewRecord, float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return self._lookup(url) is not None

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def _lookup(self, url: str) -> PreviewRecord | None:
        entry = self._entries.get(url)
        if entry is None:
            return None
        record, stored_at = entry
        if self._ttl and self._clock() - stored_at > self._ttl:
            del self._entries[url]
            logger.debug(f"Preview cache entry expired: {url}")
            return None
        return record

    def get(self, url: str) -> PreviewRecord | None:
        """Get a cached record and mark it as recently used."""
        record = self._lookup(url)
        if record is None:
            self.misses += 1
            return None
        self._entries.move_to_end(url)
        self.hits += 1
        return record

    def put(self, url: str, record: PreviewRecord) -> None:
        """Store a record, evicting the least recently used entries if full."""
        self._entries[url] = (record, self._clock())
        self._entries.move_to_end(url)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted preview cache entry: {evicted}")

    def clear(self) -> None:
        self._entries.clear()

    def info(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self.hits,
            "misses": self.misses,
        }
