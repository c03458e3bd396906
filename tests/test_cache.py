from __future__ import annotations

from scormheatmap.cache import DEFAULT_TTL, ReportCache, cache, shared_cache


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = ReportCache(ttl_seconds=10, clock=clock)
    cache.set("k", {"a": 1})
    assert cache.get("k") == {"a": 1}
    clock.now += 11
    assert cache.get("k") is None
    assert cache.stats()["total_keys"] == 0


def test_cached_computes_once() -> None:
    cache = ReportCache(ttl_seconds=60)
    calls = []

    def compute(x):
        calls.append(x)
        return x * 2

    assert cache.cached("k", compute, 4) == 8
    assert cache.cached("k", compute, 4) == 8
    assert calls == [4]


def test_make_key_is_stable_and_distinct() -> None:
    assert ReportCache.make_key("module", scorm_id=1) == ReportCache.make_key("module", scorm_id=1)
    assert ReportCache.make_key("module", scorm_id=1) != ReportCache.make_key("module", scorm_id=2)


def test_clear_all() -> None:
    report_cache = ReportCache()
    report_cache.set("a", 1)
    report_cache.set("b", 2)
    report_cache.clear_all()
    assert report_cache.get("a") is None
    assert report_cache.stats() == {"total_keys": 0, "alive_keys": 0, "ttl_seconds": 300}


def test_shared_cache_per_ttl() -> None:
    assert shared_cache() is cache
    assert shared_cache(DEFAULT_TTL) is cache
    assert shared_cache(30) is shared_cache(30)
    assert shared_cache(30).ttl == 30
    assert shared_cache(30) is not cache
