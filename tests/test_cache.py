import pytest

from embedsniff.providers.base import AggregateResponse, ProviderResult
from embedsniff.providers.cache import ResultCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _response(url="https://cdn.example/a.m3u8"):
    return AggregateResponse(results={"p": ProviderResult.found(url)})


def test_hit_within_ttl():
    clock = Clock()
    cache = ResultCache(ttl=900, clock=clock)
    value = _response()
    cache.put("k", value)
    clock.now += 899
    assert cache.get("k") is value


def test_stale_entry_is_a_miss_and_gets_overwritten():
    clock = Clock()
    cache = ResultCache(ttl=900, clock=clock)
    cache.put("k", _response())
    clock.now += 901
    assert cache.get("k") is None
    assert len(cache) == 1

    fresh = _response("https://cdn.example/b.m3u8")
    cache.put("k", fresh)
    assert cache.get("k") is fresh
    assert len(cache) == 1


def test_miss():
    assert ResultCache().get("nope") is None


def test_lru_bound():
    cache = ResultCache(max_entries=2)
    cache.put("a", _response())
    cache.put("b", _response())
    cache.get("a")
    cache.put("c", _response())
    assert cache.get("b") is None
    assert cache.get("a") is not None
    assert cache.get("c") is not None
    assert len(cache) == 2


def test_invalid_bound():
    with pytest.raises(ValueError):
        ResultCache(max_entries=0)


def test_clear():
    cache = ResultCache()
    cache.put("a", _response())
    cache.clear()
    assert len(cache) == 0


def test_empty_cache_is_truthy():
    cache = ResultCache()
    assert len(cache) == 0
    assert cache
    assert (cache or None) is cache
