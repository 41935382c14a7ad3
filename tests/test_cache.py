import threading
import time

import pytest

from relnotes.cache import TTLCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entries_expire_and_are_evicted_on_read():
    clock = FakeClock()
    cache = TTLCache(ttl_s=10, clock=clock)
    cache.set("k", "v")

    clock.now += 9.9
    assert cache.get("k") == "v"

    clock.now += 0.2
    assert cache.get("k") is None
    assert len(cache) == 0


def test_max_entries_drops_oldest():
    cache = TTLCache(ttl_s=60, max_entries=2, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_get_or_set_loads_once_until_expiry():
    clock = FakeClock()
    cache = TTLCache(ttl_s=5, clock=clock)
    calls = []

    def loader():
        calls.append(1)
        return len(calls)

    assert cache.get_or_set("k", loader) == 1
    assert cache.get_or_set("k", loader) == 1
    clock.now += 6
    assert cache.get_or_set("k", loader) == 2


def test_loader_error_stores_nothing():
    cache = TTLCache(ttl_s=5, clock=FakeClock())

    def loader():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.get_or_set("k", loader)
    assert cache.get("k", "missing") == "missing"


def test_concurrent_cold_reads_load_once():
    cache = TTLCache(ttl_s=60)
    calls = []
    gate = threading.Event()

    def loader():
        calls.append(1)
        gate.wait(0.05)
        return "value"

    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get_or_set("k", loader))) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["value"] * 8
    assert len(calls) == 1


def test_loading_one_key_does_not_block_other_keys():
    cache = TTLCache(ttl_s=60)
    cache.set(("u2", ()), "warm")
    started = threading.Event()
    release = threading.Event()

    def slow_loader():
        started.set()
        release.wait(5)
        return "cold"

    loading = threading.Thread(target=lambda: cache.get_or_set(("u1", ()), slow_loader))
    loading.start()
    try:
        assert started.wait(5)
        t0 = time.monotonic()
        assert cache.get(("u2", ())) == "warm"
        assert len(cache) == 1
        cache.invalidate(("u3", ()))
        assert time.monotonic() - t0 < 1.0
    finally:
        release.set()
        loading.join()

    assert cache.get(("u1", ())) == "cold"


def test_invalidate_and_clear():
    cache = TTLCache(ttl_s=60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_cache_key_is_order_independent_and_scoped():
    assert cache_key("user-1", first=50, archived=False) == cache_key("user-1", archived=False, first=50)
    assert cache_key("user-1", first=50) != cache_key("user-2", first=50)


def test_invalid_settings_rejected():
    with pytest.raises(ValueError):
        TTLCache(ttl_s=0)
    with pytest.raises(ValueError):
        TTLCache(ttl_s=1, max_entries=0)
