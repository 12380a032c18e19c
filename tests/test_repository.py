import threading
import time
from concurrent.futures import ThreadPoolExecutor

import httpx

from site_content.client import ContentStoreClient
from site_content.config import Settings
from site_content.errors import NetworkError
from site_content.models import Article, Collection
from site_content.repository import ContentRepository, build_repository

ROWS = {
    "Blog": [
        {"id": "a1", "title": "Hello", "status": "published", "publishedAt": "2025-01-02"},
    ],
    "Events": [
        {"title": "Launch", "date": "2020-01-01", "status": "published", "isPinned": "true"},
    ],
    "Popups": [{"id": "p1", "isActive": "TRUE"}],
    "Plaquettes": [{"id": "b1", "url": "https://example.com/catalogue.pdf"}],
    "Formations": [{"title": "LinkedIn", "status": "active"}],
}


class FakeClient:
    def __init__(self, rows=None, failing=(), delay=0.0, gate=None):
        self.rows = rows if rows is not None else ROWS
        self.failing = set(failing)
        self.delay = delay
        self.gate = gate
        self.closed = False
        self.calls = []
        self._lock = threading.Lock()

    def fetch_collection(self, collection):
        with self._lock:
            self.calls.append(collection)
        if collection in self.failing:
            if self.delay:
                time.sleep(self.delay)
            if self.gate is not None:
                self.gate.wait(timeout=5)
            raise NetworkError(f"{collection.value} unavailable", collection=collection.value)
        return self.rows[collection.sheet]

    def close(self):
        self.closed = True


def _settings(**overrides) -> Settings:
    base = dict(
        content_store_url="https://script.example.com/exec",
        content_store_token="tok",
        content_freshness_seconds=300,
        content_retry_after_seconds=0,
    )
    base.update(overrides)
    return Settings(**base)


def test_get_all_returns_normalized_records():
    repo = build_repository(_settings(), client=FakeClient())
    (article,) = repo.articles()
    assert isinstance(article, Article)
    assert article.status == "published"
    assert repo.events()[0].is_pinned is True
    assert repo.popups()[0].is_active is True
    assert repo.brochures()[0].url == "https://example.com/catalogue.pdf"
    assert repo.trainings()[0].status == "active"


def test_failure_in_one_collection_does_not_affect_others():
    client = FakeClient(failing={Collection.EVENTS})
    repo = build_repository(_settings(), client=client)

    assert [a.title for a in repo.get_all("articles")] == ["Hello"]
    assert repo.get_all("events") == ()


def test_failed_refresh_falls_back_to_last_snapshot():
    client = FakeClient()
    repo = build_repository(_settings(content_freshness_seconds=0), client=client)

    first = repo.events()
    client.failing.add(Collection.EVENTS)
    assert repo.events() == first
    assert len(client.calls) == 2


def test_load_fetches_collections_in_parallel_and_fails_open():
    client = FakeClient(failing={Collection.POPUPS}, delay=0.2)
    repo = build_repository(_settings(), client=client)

    loaded = repo.load()

    assert set(loaded) == set(Collection)
    assert loaded[Collection.POPUPS] == ()
    assert loaded[Collection.ARTICLES][0].title == "Hello"
    assert loaded[Collection.BROCHURES][0].id == "b1"


def test_load_subset_and_empty():
    repo = build_repository(_settings(), client=FakeClient())
    loaded = repo.load(["articles", Collection.EVENTS])
    assert list(loaded) == [Collection.ARTICLES, Collection.EVENTS]
    assert repo.load([]) == {}


def test_repository_reuses_cache_between_calls():
    client = FakeClient()
    repo = build_repository(_settings(), client=client)
    repo.articles()
    repo.articles()
    repo.load([Collection.ARTICLES])
    assert client.calls == [Collection.ARTICLES]


def test_end_to_end_with_http_transport():
    def handler(request):
        sheet = request.url.params["sheet"]
        if sheet == "Events":
            return httpx.Response(502, text="Bad gateway")
        return httpx.Response(200, json=ROWS[sheet])

    settings = _settings()
    client = ContentStoreClient.from_settings(settings, transport=httpx.MockTransport(handler))
    repo = build_repository(settings, client=client)

    loaded = repo.load()

    assert loaded[Collection.EVENTS] == ()
    assert loaded[Collection.ARTICLES][0].title == "Hello"
    assert "NetworkError" in repo.cache.status()["events"]["last_error"]


def test_repository_accepts_explicit_cache():
    from site_content.cache import CollectionCache

    cache = CollectionCache(lambda c: (), freshness_seconds=10)
    repo = ContentRepository(cache, max_workers=0)
    assert repo.max_workers == 1
    assert repo.get_all("articles") == ()


def test_blocked_collection_does_not_delay_the_others():
    gate = threading.Event()
    client = FakeClient(failing={Collection.EVENTS}, gate=gate)
    repo = build_repository(_settings(), client=client)
    others = [c for c in Collection if c is not Collection.EVENTS]

    with ThreadPoolExecutor(max_workers=1) as executor:
        loading = executor.submit(repo.load)
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            if all(repo.cache.peek(c) is not None for c in others):
                break
            time.sleep(0.01)

        assert all(repo.cache.peek(c) is not None for c in others)
        assert not loading.done()
        gate.set()
        loaded = loading.result(timeout=5)

    assert loaded[Collection.EVENTS] == ()
    assert loaded[Collection.ARTICLES][0].title == "Hello"


def test_close_releases_the_owned_client():
    client = FakeClient()
    repo = build_repository(_settings(), client=client)
    repo.close()
    repo.close()
    assert client.closed is True
