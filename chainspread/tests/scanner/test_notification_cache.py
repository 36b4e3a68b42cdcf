import pytest

from chainspread.src.scanner.notification_cache import CooldownCache, notification_key


class _FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_notification_key_separates_symbol_and_venue():
    assert notification_key("CAKE", "bitmart") == "CAKE:bitmart"
    assert notification_key("AB", "Cvenue") != notification_key("ABC", "venue")


def test_entries_expire_after_ttl():
    clock = _FakeClock()
    cache = CooldownCache(60, clock=clock)

    cache.add("CAKE:bitmart", "evaluation")
    clock.advance(59)
    assert cache.contains("CAKE:bitmart")
    assert cache.get("CAKE:bitmart") == "evaluation"

    clock.advance(1)
    assert not cache.contains("CAKE:bitmart")
    assert cache.get("CAKE:bitmart") is None
    assert len(cache) == 0


def test_add_restarts_cooldown():
    clock = _FakeClock()
    cache = CooldownCache(10, clock=clock)

    cache.add("CAKE:bitmart")
    clock.advance(8)
    cache.add("CAKE:bitmart")
    clock.advance(8)

    assert "CAKE:bitmart" in cache


def test_sweep_removes_only_expired_entries():
    clock = _FakeClock()
    cache = CooldownCache(10, clock=clock)

    cache.add("OLD:bitmart")
    clock.advance(6)
    cache.add("NEW:bitmart")
    clock.advance(5)

    assert cache.sweep() == 1
    assert len(cache) == 1
    assert "NEW:bitmart" in cache


def test_negative_ttl_is_rejected():
    with pytest.raises(ValueError):
        CooldownCache(-1)
