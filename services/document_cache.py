"""
document_cache.py
─────────────────
Bounded, TTL-expiring cache owned by whoever drives the pipeline.

Used for whole pipeline reports (keyed by document identifier) and for
geocoding results (keyed by normalized address). The pipeline never
creates one on its own; callers construct it and pass it in.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)


class DocumentCache:
    """
    Least-recently-used eviction once `max_entries` is reached; entries
    older than `ttl_seconds` are treated as absent and dropped on access.
    """

    def __init__(self, max_entries: int = 128, ttl_seconds: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            logger.debug(f"[DocumentCache] Expired {key!r}")
            return None
        self._entries.move_to_end(key)
        return value

    def put(self, key: Hashable, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (self._clock(), value)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[DocumentCache] Evicted {evicted!r}")

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
