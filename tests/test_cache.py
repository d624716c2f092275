"""Tests for the bounded preview cache."""

import pytest

from hovercard.core.cache import PreviewCache
from hovercard.core.models import PreviewRecord


def _record(url: str) -> PreviewRecord:
    return PreviewRecord.fallback(url)


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_get_missing_returns_none():
    cache = PreviewCache()
    assert cache.get("https://a.example") is None
    assert cache.misses == 1


def test_put_then_get_returns_same_object():
    cache = PreviewCache()
    record = _record("https://a.example")
    cache.put("https://a.example", record)
    assert cache.get("https://a.example") is record
    assert cache.hits == 1


def test_evicts_least_recently_used():
    cache = PreviewCache(max_entries=2)
    cache.put("a", _record("https://a.example"))
    cache.put("b", _record("https://b.example"))
    cache.get("a")  # a is now most recently used
    cache.put("c", _record("https://c.example"))
    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache
    assert len(cache) == 2


def test_ttl_expiry():
    clock = _Clock()
    cache = PreviewCache(ttl_seconds=60, clock=clock)
    cache.put("a", _record("https://a.example"))
    clock.now += 59
    assert cache.get("a") is not None
    clock.now += 2
    assert cache.get("a") is None
    assert len(cache) == 0


def test_zero_ttl_never_expires():
    clock = _Clock()
    cache = PreviewCache(ttl_seconds=0, clock=clock)
    cache.put("a", _record("https://a.example"))
    clock.now += 10**9
    assert cache.get("a") is not None


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        PreviewCache(max_entries=0)


def test_info_and_clear():
    cache = PreviewCache(max_entries=5)
    cache.put("a", _record("https://a.example"))
    cache.get("a")
    cache.get("b")
    assert cache.info() == {"size": 1, "max_entries": 5, "hits": 1, "misses": 1}
    cache.clear()
    assert len(cache) == 0
