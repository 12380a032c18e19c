import threading
from concurrent.futures import ThreadPoolExecutor

from site_content.cache import CollectionCache
from site_content.errors import MalformedResponseError, NetworkError
from site_content.models import Collection, Event


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetch:
    """Returns queued outcomes in order; exceptions are raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, collection):
        self.calls.append(collection)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _events(*titles):
    return tuple(Event(title=t) for t in titles)


def _cache(fetch, clock, **kwargs):
    kwargs.setdefault("freshness_seconds", 60)
    kwargs.setdefault("retry_after_seconds", 0)
    return CollectionCache(fetch, clock=clock, **kwargs)


def test_cold_get_fetches_and_stores_snapshot():
    clock = FakeClock()
    fetch = FakeFetch(_events("a"))
    cache = _cache(fetch, clock)

    records = cache.get("events")

    assert [r.title for r in records] == ["a"]
    assert fetch.calls == [Collection.EVENTS]
    entry = cache.peek(Collection.EVENTS)
    assert entry.records == records
    assert entry.fetched_at == clock.now


def test_fresh_snapshot_is_served_without_refetch():
    clock = FakeClock()
    fetch = FakeFetch(_events("a"), _events("b"))
    cache = _cache(fetch, clock)

    cache.get("events")
    clock.advance(59)
    records = cache.get("events")

    assert [r.title for r in records] == ["a"]
    assert len(fetch.calls) == 1


def test_stale_snapshot_is_replaced_on_successful_refresh():
    clock = FakeClock()
    fetch = FakeFetch(_events("a"), _events("b"))
    cache = _cache(fetch, clock)

    cache.get("events")
    clock.advance(60)
    records = cache.get("events")

    assert [r.title for r in records] == ["b"]
    assert len(fetch.calls) == 2


def test_failed_refresh_serves_previous_snapshot():
    clock = FakeClock()
    fetch = FakeFetch(_events("a"), NetworkError("down", collection="events"))
    cache = _cache(fetch, clock)

    first = cache.get("events")
    clock.advance(120)
    second = cache.get("events")

    assert second == first
    assert cache.peek("events").records == first
    status = cache.status()["events"]
    assert status["records"] == 1
    assert status["fresh"] is False
    assert "NetworkError" in status["last_error"]


def test_failure_without_snapshot_serves_empty():
    clock = FakeClock()
    cache = _cache(FakeFetch(MalformedResponseError("nope")), clock)
    assert cache.get("articles") == ()
    assert cache.peek("articles") is None


def test_unexpected_exceptions_are_absorbed():
    clock = FakeClock()
    cache = _cache(FakeFetch(RuntimeError("boom")), clock)
    assert cache.get("popups") == ()


def test_retry_after_limits_refresh_attempts():
    clock = FakeClock()
    fetch = FakeFetch(NetworkError("down"), NetworkError("down"), _events("back"))
    cache = _cache(fetch, clock, retry_after_seconds=30)

    assert cache.get("events") == ()
    clock.advance(10)
    assert cache.get("events") == ()
    assert len(fetch.calls) == 1

    clock.advance(25)
    assert cache.get("events") == ()
    assert len(fetch.calls) == 2

    clock.advance(30)
    assert [r.title for r in cache.get("events")] == ["back"]
    assert len(fetch.calls) == 3


def test_single_flight_for_concurrent_cold_gets():
    clock = FakeClock()
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch(collection):
        calls.append(collection)
        started.set()
        release.wait(timeout=5)
        return _events("shared")

    cache = _cache(slow_fetch, clock)

    with ThreadPoolExecutor(max_workers=8) as executor:
        futures = [executor.submit(cache.get, "articles") for _ in range(8)]
        assert started.wait(timeout=5)
        release.set()
        results = [f.result(timeout=5) for f in futures]

    assert len(calls) == 1
    assert all(r == results[0] for r in results)
    assert [r.title for r in results[0]] == ["shared"]


def test_stale_snapshot_served_while_refresh_in_flight():
    clock = FakeClock()
    started = threading.Event()
    release = threading.Event()
    outcomes = [_events("old"), _events("new")]

    def fetch(collection):
        result = outcomes.pop(0)
        if result[0].title == "new":
            started.set()
            release.wait(timeout=5)
        return result

    cache = _cache(fetch, clock)
    cache.get("events")
    clock.advance(61)

    with ThreadPoolExecutor(max_workers=1) as executor:
        refreshing = executor.submit(cache.get, "events")
        assert started.wait(timeout=5)
        assert [r.title for r in cache.get("events")] == ["old"]
        release.set()
        assert [r.title for r in refreshing.result(timeout=5)] == ["new"]


def test_collections_are_cached_independently():
    clock = FakeClock()

    def fetch(collection):
        if collection is Collection.EVENTS:
            raise NetworkError("events down", collection="events")
        return _events(collection.value)

    cache = _cache(fetch, clock)
    assert [r.title for r in cache.get("articles")] == ["articles"]
    assert cache.get("events") == ()


def test_invalidate_forces_refetch():
    clock = FakeClock()
    fetch = FakeFetch(_events("a"), _events("b"), _events("c"))
    cache = _cache(fetch, clock)

    cache.get("events")
    cache.get("articles")
    cache.invalidate("events")
    assert cache.peek("articles") is not None
    assert [r.title for r in cache.get("events")] == ["c"]

    cache.invalidate()
    assert cache.peek("articles") is None
