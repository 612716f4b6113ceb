from datetime import datetime, timedelta

import pytest

from govdoc.infrastructure.cache.forensic_cache import InMemoryForensicCache, report_hash

from tests.fakes import make_report


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0))


@pytest.fixture
def cache(clock):
    return InMemoryForensicCache(default_ttl_seconds=3600, clock=clock)


def test_hit_and_miss_counters(cache):
    report = make_report(score=88)
    cache.put("abc", report)

    assert cache.get("abc") is report
    assert cache.get("missing") is None

    stats = cache.stats()
    assert (stats.size, stats.hits, stats.misses) == (1, 1, 1)
    assert stats.hit_rate == 0.5
    assert stats.miss_rate == 0.5


def test_entry_carries_report_hash(cache):
    report = make_report()
    entry = cache.put("abc", report)
    assert entry.report_hash == report_hash(report)
    assert entry.expires_at - entry.cached_at == timedelta(hours=1)


def test_expired_entries_are_evicted_on_lookup(cache, clock):
    cache.put("abc", make_report())
    clock.advance(minutes=59)
    assert cache.get("abc") is not None

    clock.advance(minutes=1)
    assert cache.get("abc") is None

    stats = cache.stats()
    assert stats.size == 0
    assert stats.evictions == 1
    assert stats.misses == 1


def test_per_entry_ttl(cache, clock):
    cache.put("short", make_report(), ttl_seconds=10)
    clock.advance(seconds=11)
    assert cache.get("short") is None


def test_purge_older_than(cache, clock):
    cache.put("old", make_report())
    clock.advance(minutes=30)
    cache.put("new", make_report())

    removed = cache.purge(older_than=clock() - timedelta(minutes=10))

    assert removed == 1
    assert cache.get("old") is None
    assert cache.get("new") is not None


def test_purge_everything(cache):
    for key in ("a", "b", "c"):
        cache.put(key, make_report())
    assert cache.purge() == 3
    assert cache.stats().size == 0


def test_reset_stats_keeps_entries(cache):
    cache.put("abc", make_report())
    cache.get("abc")
    cache.get("nope")

    cache.reset_stats()

    stats = cache.stats()
    assert (stats.hits, stats.misses, stats.hit_rate) == (0, 0, 0.0)
    assert stats.size == 1


def test_stats_to_dict(cache, clock):
    cache.put("abc", make_report())
    data = cache.stats().to_dict()
    assert data["hitRate"] == 0.0
    assert data["oldestEntry"] == clock().isoformat()
