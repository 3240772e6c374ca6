"""
Tests: PlanCache — TTL expiry with an injected clock, loader and invalidation.
"""

from proposalhub.services.plan_cache import PlanCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = PlanCache(ttl_seconds=300, clock=clock)
    cache.set("starter", "plan")

    clock.advance(299)
    assert cache.get("starter") == "plan"

    clock.advance(1)
    assert cache.get("starter") is None
    assert len(cache) == 0


def test_get_or_load_calls_loader_once_until_expiry():
    clock = FakeClock()
    cache = PlanCache(ttl_seconds=60, clock=clock)
    calls = []

    def loader():
        calls.append(1)
        return {"key": "pro"}

    assert cache.get_or_load("pro", loader) == {"key": "pro"}
    assert cache.get_or_load("pro", loader) == {"key": "pro"}
    assert len(calls) == 1

    clock.advance(61)
    cache.get_or_load("pro", loader)
    assert len(calls) == 2


def test_none_results_are_not_cached():
    cache = PlanCache(ttl_seconds=60, clock=FakeClock())
    calls = []

    def loader():
        calls.append(1)

    cache.get_or_load("missing", loader)
    cache.get_or_load("missing", loader)
    assert len(calls) == 2


def test_invalidate_single_key_and_all():
    cache = PlanCache(ttl_seconds=60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate()
    assert len(cache) == 0


def test_app_owns_its_cache(app):
    assert isinstance(app.extensions["plan_cache"], PlanCache)
    assert app.extensions["plan_cache"].ttl_seconds == app.config["PLAN_CACHE_TTL"]
