"""
In-memory forensic result cache.

Keyed by the SHA-256 of the uploaded bytes so identical files are not
re-analysed. Expired entries are evicted lazily on lookup and by
`purge()`. Hit/miss counters only reset through `reset_stats()`.

Reads and writes are guarded by one lock; concurrent `put` calls on the
same hash are last-writer-wins.
"""

import hashlib
import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.interfaces.forensic_cache import CacheEntry, CacheStats, IForensicCache

logger = logging.getLogger(__name__)


def report_hash(report: ForensicReport) -> str:
    payload = json.dumps(report.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class InMemoryForensicCache(IForensicCache):
    """Process-local forensic cache with TTL."""

    def __init__(self, default_ttl_seconds: float = 3600, clock: Callable[[], datetime] = datetime.utcnow):
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, file_hash: str) -> ForensicReport | None:
        with self._lock:
            entry = self._entries.get(file_hash)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[file_hash]
                self._evictions += 1
                self._misses += 1
                logger.debug(f"Evicted expired cache entry {file_hash[:12]}")
                return None

            entry.hit_count += 1
            self._hits += 1
            return entry.report

    def put(self, file_hash: str, report: ForensicReport, ttl_seconds: float | None = None) -> CacheEntry:
        now = self._clock()
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(
            file_hash=file_hash,
            report_hash=report_hash(report),
            report=report,
            cached_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )
        with self._lock:
            self._entries[file_hash] = entry
        return entry

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            cached_times = [e.cached_at for e in self._entries.values()]
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                hit_rate=round(self._hits / lookups, 4) if lookups else 0.0,
                miss_rate=round(self._misses / lookups, 4) if lookups else 0.0,
                oldest_entry=min(cached_times) if cached_times else None,
                newest_entry=max(cached_times) if cached_times else None,
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def purge(self, older_than: datetime | None = None) -> int:
        with self._lock:
            if older_than is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                stale = [k for k, e in self._entries.items() if e.cached_at < older_than]
                for key in stale:
                    del self._entries[key]
                removed = len(stale)
            self._evictions += removed
        logger.info(f"Forensic cache purge removed {removed} entr{'y' if removed == 1 else 'ies'}")
        return removed
