"""
Contract: Forensic Result Cache

Content-addressed cache of forensic reports, keyed by the SHA-256 of the
uploaded bytes. Advisory only, never a source of truth.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from govdoc.core.entities.forensic_report import ForensicReport


@dataclass
class CacheEntry:
    file_hash: str
    report_hash: str
    report: ForensicReport
    cached_at: datetime
    expires_at: datetime
    hit_count: int = 0


@dataclass
class CacheStats:
    size: int
    hits: int
    misses: int
    evictions: int
    hit_rate: float
    miss_rate: float
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hitRate": self.hit_rate,
            "missRate": self.miss_rate,
            "oldestEntry": self.oldest_entry.isoformat() if self.oldest_entry else None,
            "newestEntry": self.newest_entry.isoformat() if self.newest_entry else None,
        }


class IForensicCache(ABC):
    """Port: Forensic Result Cache."""

    @abstractmethod
    def get(self, file_hash: str) -> ForensicReport | None:
        """Return the cached report, or None when absent or expired."""
        ...

    @abstractmethod
    def put(self, file_hash: str, report: ForensicReport, ttl_seconds: float | None = None) -> CacheEntry:
        """Store a report, replacing any entry for the same hash."""
        ...

    @abstractmethod
    def stats(self) -> CacheStats:
        ...

    @abstractmethod
    def reset_stats(self) -> None:
        ...

    @abstractmethod
    def purge(self, older_than: datetime | None = None) -> int:
        """Drop entries cached before `older_than` (all when None). Returns count removed."""
        ...
