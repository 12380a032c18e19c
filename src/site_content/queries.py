"""Pure views over normalized collections, as page renderers need them.

Every function takes already-normalized records, returns a new tuple (or a
single value), and is total over the empty sequence. Sorting is stable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple, TypeVar

from .models import Article, Brochure, Event, Popup, Training, has_date

T = TypeVar("T")


def filter_published(records: Iterable[T]) -> Tuple[T, ...]:
    return tuple(r for r in records if getattr(r, "status", None) == "published")


def filter_upcoming_or_pinned(events: Iterable[Event], now: datetime) -> Tuple[Event, ...]:
    """Pinned events always qualify; others need a date at or after ``now``."""
    return tuple(e for e in events if e.is_pinned or (has_date(e.date) and e.date >= now))


def filter_upcoming(events: Iterable[Event], now: datetime) -> Tuple[Event, ...]:
    """Dated events from ``now`` onwards, soonest first (ignores pinning)."""
    upcoming = [e for e in events if has_date(e.date) and e.date >= now]
    return tuple(sorted(upcoming, key=lambda e: e.date))


def filter_past(events: Iterable[Event], now: datetime) -> Tuple[Event, ...]:
    """Dated events before ``now``, most recent first."""
    past = [e for e in events if has_date(e.date) and e.date < now]
    return tuple(sorted(past, key=lambda e: e.date, reverse=True))


def sort_pinned_then_date(events: Iterable[Event]) -> Tuple[Event, ...]:
    """Pinned events first in source order, then the rest by ascending date (undated last)."""
    events = tuple(events)
    pinned = [e for e in events if e.is_pinned]
    rest = sorted(
        (e for e in events if not e.is_pinned), key=lambda e: (not has_date(e.date), e.date)
    )
    return tuple(pinned + rest)


def sort_by_date_descending(articles: Iterable[Article]) -> Tuple[Article, ...]:
    # sorted(reverse=True) keeps ties in source order; undated articles hold
    # OLDEST so they end up last.
    return tuple(sorted(articles, key=lambda a: a.published_at, reverse=True))


def sort_by_order(records: Iterable[T]) -> Tuple[T, ...]:
    return tuple(sorted(records, key=lambda r: getattr(r, "order", 0)))


def take(records: Iterable[T], n: int) -> Tuple[T, ...]:
    if n <= 0:
        return ()
    return tuple(records)[:n]


def first_active(popups: Iterable[Popup]) -> Optional[Popup]:
    return next((p for p in popups if p.is_active), None)


def filter_scheduled(popups: Iterable[Popup], now: datetime) -> Tuple[Popup, ...]:
    """Drop popups whose optional start/end window excludes ``now``."""
    return tuple(
        p
        for p in popups
        if (not has_date(p.start_date) or p.start_date <= now)
        and (not has_date(p.end_date) or now <= p.end_date)
    )


def first_or_default(brochures: Sequence[Brochure], fallback_url: str) -> str:
    for brochure in brochures:
        return brochure.url
    return fallback_url


def filter_active(trainings: Iterable[Training]) -> Tuple[Training, ...]:
    return tuple(t for t in trainings if t.status == "active")


def find_by_slug(articles: Iterable[Article], slug: str) -> Optional[Article]:
    return next((a for a in articles if a.slug and a.slug == slug), None)


def find_by_id(records: Iterable[T], record_id: str) -> Optional[T]:
    return next((r for r in records if getattr(r, "id", "") == record_id), None)


# --- Composed views -------------------------------------------------------

def displayable_articles(articles: Iterable[Article]) -> Tuple[Article, ...]:
    """Published articles with a real timestamp, newest first."""
    published = (a for a in filter_published(articles) if has_date(a.published_at))
    return sort_by_date_descending(published)


def latest_articles(articles: Iterable[Article], n: int) -> Tuple[Article, ...]:
    return take(displayable_articles(articles), n)


def featured_events(events: Iterable[Event], now: datetime, n: int) -> Tuple[Event, ...]:
    """Published events that are pinned or upcoming, pinned first, top ``n``."""
    eligible = filter_upcoming_or_pinned(filter_published(events), now)
    return take(sort_pinned_then_date(eligible), n)


def current_popup(popups: Iterable[Popup], now: datetime) -> Optional[Popup]:
    """The first active popup, or None when its schedule window excludes ``now``."""
    active = first_active(popups)
    if active is None or not filter_scheduled((active,), now):
        return None
    return active


def primary_brochure_url(brochures: Iterable[Brochure], fallback_url: str) -> str:
    return first_or_default(tuple(brochures), fallback_url)
