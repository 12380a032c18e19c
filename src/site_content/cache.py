"""Per-collection snapshot cache with stale-serve-on-failure and single-flight fetches.

One cache is built per execution context and injected into whatever needs it.
It is best-effort: a serverless host may throw it away between requests, so a
cold cache is the normal case and nothing may rely on it having survived.
"""

from __future__ import annotations

import time
from concurrent.futures import Future
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from loguru import logger

from .models import Collection, Record

Records = Tuple[Record, ...]
FetchFn = Callable[[Collection], Iterable[Record]]


@dataclass(frozen=True)
class CacheEntry:
    records: Records
    fetched_at: float


@dataclass
class _Slot:
    entry: Optional[CacheEntry] = None
    in_flight: Optional["Future[Records]"] = None
    failed_at: Optional[float] = None
    last_error: Optional[str] = None


class CollectionCache:
    """Serve normalized collections, refreshing them at most once per freshness window.

    ``get`` never raises: a failed refresh returns the previous snapshot, or an
    empty tuple when there has never been a successful fetch.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        freshness_seconds: float = 300.0,
        retry_after_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self.freshness_seconds = freshness_seconds
        self.retry_after_seconds = retry_after_seconds
        self._clock = clock
        self._lock = Lock()
        self._slots: Dict[Collection, _Slot] = {}

    def get(self, collection: Collection | str) -> Records:
        collection = Collection.parse(collection)
        with self._lock:
            slot = self._slots.setdefault(collection, _Slot())
            now = self._clock()
            entry = slot.entry
            if entry is not None and now - entry.fetched_at < self.freshness_seconds:
                return entry.records
            if slot.in_flight is not None:
                if entry is not None:
                    # Someone is already refreshing; the stale snapshot is good enough.
                    return entry.records
                future = slot.in_flight
                leader = False
            elif self._backing_off(slot, now):
                return entry.records if entry is not None else ()
            else:
                future = Future()
                slot.in_flight = future
                leader = True

        if leader:
            self._refresh(collection, slot, future)
        return future.result()

    def _backing_off(self, slot: _Slot, now: float) -> bool:
        if slot.failed_at is None or self.retry_after_seconds <= 0:
            return False
        return now - slot.failed_at < self.retry_after_seconds

    def _refresh(
        self, collection: Collection, slot: _Slot, future: "Future[Records]"
    ) -> None:
        result: Records = ()
        try:
            records = tuple(self._fetch(collection))
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            with self._lock:
                slot.failed_at = self._clock()
                slot.last_error = error
                if slot.entry is not None:
                    result = slot.entry.records
            if slot.entry is not None:
                logger.warning(
                    f"Refreshing {collection.value} failed ({error}); "
                    f"serving {len(result)} stale record(s)"
                )
            else:
                logger.warning(
                    f"Fetching {collection.value} failed ({error}); serving empty collection"
                )
        else:
            with self._lock:
                slot.entry = CacheEntry(records=records, fetched_at=self._clock())
                slot.failed_at = None
                slot.last_error = None
            result = records
            logger.debug(f"Cached {len(records)} {collection.value} record(s)")
        finally:
            with self._lock:
                if slot.in_flight is future:
                    slot.in_flight = None
            future.set_result(result)

    def peek(self, collection: Collection | str) -> Optional[CacheEntry]:
        """Return the stored snapshot without fetching."""
        with self._lock:
            slot = self._slots.get(Collection.parse(collection))
            return slot.entry if slot else None

    def invalidate(self, collection: Collection | str | None = None) -> None:
        """Forget snapshots so the next ``get`` refetches (all collections by default)."""
        with self._lock:
            if collection is None:
                slots = list(self._slots.values())
            else:
                slot = self._slots.get(Collection.parse(collection))
                slots = [slot] if slot else []
            for slot in slots:
                slot.entry = None
                slot.failed_at = None
                slot.last_error = None

    def status(self) -> Dict[str, Dict[str, Any]]:
        """Per-collection snapshot size, age and last refresh error."""
        now = self._clock()
        report: Dict[str, Dict[str, Any]] = {}
        with self._lock:
            for collection, slot in self._slots.items():
                entry = slot.entry
                report[collection.value] = {
                    "records": len(entry.records) if entry else None,
                    "age_seconds": round(now - entry.fetched_at, 3) if entry else None,
                    "fresh": bool(entry)
                    and now - entry.fetched_at < self.freshness_seconds,
                    "last_error": slot.last_error,
                }
        return report
