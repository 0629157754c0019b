"""In-memory ETag store backing the conditional-request transport.

One instance is created per application and injected into the HTTP client.
It is a process-lifetime optimisation only: dropping it changes API-call
volume, never behaviour.
"""

from __future__ import annotations

import logging

from dex_publisher.domain.entities import CacheEntry, CacheStats

logger = logging.getLogger(__name__)


class CacheStore:
    """Unbounded map of request signature → :class:`CacheEntry` plus counters.

    No locking: all access happens on one event loop and no method awaits,
    so individual reads and writes cannot interleave.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, signature: str) -> CacheEntry | None:
        return self._entries.get(signature)

    def put(
        self,
        signature: str,
        validator: str,
        payload: bytes,
        content_type: str | None = None,
    ) -> None:
        """Store (or overwrite) the entry for *signature*."""
        self._entries[signature] = CacheEntry(
            validator=validator, payload=payload, content_type=content_type
        )

    def record_hit(self) -> None:
        self._hits += 1

    def record_miss(self) -> None:
        self._misses += 1

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        logger.info("Clearing ETag cache (%d entries)", len(self._entries))
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, signature: object) -> bool:
        return signature in self._entries
