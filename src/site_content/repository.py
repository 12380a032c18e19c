"""Entry point page renderers use to read content.

``ContentRepository.get_all`` always succeeds: failures are absorbed by the
cache, so a broken content store empties a page section instead of failing
the page.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, Optional, Tuple

from .cache import CollectionCache, Records
from .client import ContentStoreClient
from .config import Settings, get_settings
from .models import Article, Brochure, Collection, Event, Popup, Training
from .normalizer import normalize


def fetch_and_normalize(client: ContentStoreClient) -> Callable[[Collection], Records]:
    """Build the cache's fetch function: remote rows -> normalized records."""

    def _fetch(collection: Collection) -> Records:
        return normalize(collection, client.fetch_collection(collection))

    return _fetch


class ContentRepository:
    def __init__(
        self,
        cache: CollectionCache,
        *,
        max_workers: int = 5,
        client: Optional[ContentStoreClient] = None,
    ) -> None:
        self.cache = cache
        self.max_workers = max(1, max_workers)
        self._client = client

    def close(self) -> None:
        """Release the store client's connection pool, if this repository owns one."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def get_all(self, collection: Collection | str) -> Records:
        return self.cache.get(collection)

    def articles(self) -> Tuple[Article, ...]:
        return self.get_all(Collection.ARTICLES)

    def events(self) -> Tuple[Event, ...]:
        return self.get_all(Collection.EVENTS)

    def popups(self) -> Tuple[Popup, ...]:
        return self.get_all(Collection.POPUPS)

    def brochures(self) -> Tuple[Brochure, ...]:
        return self.get_all(Collection.BROCHURES)

    def trainings(self) -> Tuple[Training, ...]:
        return self.get_all(Collection.TRAININGS)

    def load(
        self, collections: Optional[Iterable[Collection | str]] = None
    ) -> Dict[Collection, Records]:
        """Load several collections in parallel; each one degrades independently."""
        if collections is None:
            collections = list(Collection)
        wanted = [Collection.parse(c) for c in collections]
        if not wanted:
            return {}
        worker_count = min(self.max_workers, len(wanted))
        with ThreadPoolExecutor(max_workers=worker_count) as executor:
            futures = {c: executor.submit(self.cache.get, c) for c in wanted}
            return {c: future.result() for c, future in futures.items()}


def build_repository(
    settings: Optional[Settings] = None,
    *,
    client: Optional[ContentStoreClient] = None,
) -> ContentRepository:
    """Wire client -> normalizer -> cache from settings (validated up front)."""
    settings = settings or get_settings()
    client = client or ContentStoreClient.from_settings(settings)
    cache = CollectionCache(
        fetch_and_normalize(client),
        freshness_seconds=settings.content_freshness_seconds,
        retry_after_seconds=settings.content_retry_after_seconds,
    )
    return ContentRepository(
        cache, max_workers=settings.content_fetch_workers, client=client
    )
