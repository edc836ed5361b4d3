import pytest

from trustgate.cache import KEY_PREFIX, ReviewCache, cache_key


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_minutes(self, minutes: float) -> None:
        self.now += int(minutes * 60 * 1000)


@pytest.fixture
def clock():
    return FakeClock()


def test_cache_key_format():
    assert cache_key("abc") == "review_cache_abc"
    assert KEY_PREFIX == "review_cache_"


def test_hit_within_ttl(clock):
    cache = ReviewCache(ttl_minutes=30, clock=clock)
    cache.put("sub-1", {"total_score": 70})
    clock.advance_minutes(30)
    assert cache.get("sub-1") == {"total_score": 70}


def test_expired_entry_is_evicted_on_read(clock):
    cache = ReviewCache(ttl_minutes=30, clock=clock)
    cache.put("sub-1", {"total_score": 70})
    assert len(cache) == 1

    clock.advance_minutes(31)
    assert cache.get("sub-1") is None
    assert len(cache) == 0


def test_per_entry_ttl(clock):
    cache = ReviewCache(ttl_minutes=30, clock=clock)
    cache.put("short", {"total_score": 1}, ttl_minutes=1)
    cache.put("long", {"total_score": 2})
    clock.advance_minutes(2)
    assert cache.get("short") is None
    assert cache.get("long") == {"total_score": 2}


def test_invalidate_and_clear(clock):
    cache = ReviewCache(clock=clock)
    cache.put("a", {"total_score": 1})
    cache.put("b", {"total_score": 2})

    cache.invalidate("a")
    cache.invalidate("missing")
    assert cache.get("a") is None
    assert cache.get("b") == {"total_score": 2}

    cache.clear()
    assert len(cache) == 0


def test_non_positive_ttl_is_rejected(clock):
    with pytest.raises(ValueError):
        ReviewCache(ttl_minutes=0, clock=clock)
    with pytest.raises(ValueError):
        ReviewCache(clock=clock).put("a", {}, ttl_minutes=-1)


def test_cached_entries_are_isolated_from_callers(clock):
    cache = ReviewCache(clock=clock)
    score = {"total_score": 70, "per_category": {"security": 5}}
    cache.put("sub-1", score)

    score["total_score"] = 0
    hit = cache.get("sub-1")
    hit["per_category"]["security"] = 10

    assert cache.get("sub-1") == {"total_score": 70, "per_category": {"security": 5}}
