"""Coerce loosely-typed store rows into canonical records.

The content store is a spreadsheet maintained by editors, so the same column
can arrive as a native value in one row and as a string in the next
(``isPinned`` is ``true`` here and ``"TRUE"`` there, dates are ISO strings,
date-only strings or epoch milliseconds). Everything in this module is total:
a bad field falls back to a neutral default and a bad row is dropped, but the
collection as a whole is always returned.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pydantic
from loguru import logger

from .errors import ValidationError
from .models import (
    OLDEST,
    Article,
    Brochure,
    Collection,
    Event,
    Popup,
    Record,
    Training,
)

_OFFSET_WITHOUT_COLON = re.compile(r"([+-]\d{2})(\d{2})$")


# --- Field coercion -------------------------------------------------------

def coerce_bool(value: Any) -> bool:
    """True only for the native ``True`` or a string reading "true" in any case."""
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def coerce_datetime(value: Any) -> datetime:
    """Parse a date-like value into an aware datetime; OLDEST when unusable."""
    if isinstance(value, bool) or value is None:
        return OLDEST
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Spreadsheet serializers emit epoch milliseconds.
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return OLDEST
    if not isinstance(value, str):
        return OLDEST

    txt = value.strip()
    if not txt:
        return OLDEST

    # datetime.fromisoformat doesn't accept every RFC3339 variant (trailing "Z",
    # "+0000" offsets) on older interpreters. Normalize those before parsing.
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    else:
        txt = _OFFSET_WITHOUT_COLON.sub(r"\1:\2", txt)

    try:
        return _as_utc(datetime.fromisoformat(txt))
    except (ValueError, OverflowError):
        return OLDEST


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_text(value: Any, default: str = "") -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def coerce_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else default
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return default
    return default


def coerce_list(value: Any) -> List[str]:
    """Lists pass through as stripped strings; strings are split on commas/newlines."""
    if isinstance(value, (list, tuple)):
        items = [coerce_text(item) for item in value]
    elif isinstance(value, str):
        items = [part.strip() for part in re.split(r"[,\n]", value)]
    else:
        return []
    return [item for item in items if item]


def coerce_choice(value: Any, choices: Sequence[str], default: str) -> str:
    txt = coerce_text(value).lower()
    return txt if txt in choices else default


def _field(row: Mapping[str, Any], *names: str) -> Any:
    """Return the first present value among camelCase/snake_case spellings."""
    for name in names:
        if name in row and row[name] is not None:
            return row[name]
    return None


def _required_text(row: Mapping[str, Any], label: str, *names: str) -> str:
    txt = coerce_text(_field(row, *names))
    if not txt:
        raise ValidationError(f"{label} is required")
    return txt


# --- Per-collection normalizers ------------------------------------------

def normalize_article(row: Mapping[str, Any], position: int = 0) -> Article:
    return Article(
        id=coerce_text(_field(row, "id")),
        title=_required_text(row, "title", "title"),
        slug=coerce_text(_field(row, "slug")),
        content=coerce_text(_field(row, "content", "body")),
        excerpt=coerce_text(_field(row, "excerpt")),
        author=coerce_text(_field(row, "author")),
        cover_image=coerce_text(_field(row, "coverImage", "cover_image")),
        category=coerce_text(_field(row, "category")),
        tags=coerce_list(_field(row, "tags")),
        status=coerce_choice(_field(row, "status"), ("draft", "published"), "draft"),
        published_at=coerce_datetime(_field(row, "publishedAt", "published_at")),
    )


def normalize_event(row: Mapping[str, Any], position: int = 0) -> Event:
    return Event(
        id=coerce_text(_field(row, "id")),
        title=_required_text(row, "title", "title"),
        description=coerce_text(_field(row, "description")),
        location=coerce_text(_field(row, "location")),
        image=coerce_text(_field(row, "image")),
        registration_link=coerce_text(
            _field(row, "registrationLink", "registration_link")
        ),
        date=coerce_datetime(_field(row, "date")),
        status=coerce_choice(
            _field(row, "status"), ("draft", "published", "cancelled"), "draft"
        ),
        is_pinned=coerce_bool(_field(row, "isPinned", "is_pinned", "pinned")),
    )


def normalize_popup(row: Mapping[str, Any], position: int = 0) -> Popup:
    return Popup(
        id=coerce_text(_field(row, "id")),
        title=coerce_text(_field(row, "title")),
        image=coerce_text(_field(row, "image")),
        link=coerce_text(_field(row, "link")),
        is_active=coerce_bool(_field(row, "isActive", "is_active", "active")),
        start_date=coerce_datetime(_field(row, "startDate", "start_date")),
        end_date=coerce_datetime(_field(row, "endDate", "end_date")),
    )


def normalize_brochure(row: Mapping[str, Any], position: int = 0) -> Brochure:
    return Brochure(
        id=coerce_text(_field(row, "id")),
        name=coerce_text(_field(row, "name")),
        description=coerce_text(_field(row, "description")),
        url=_required_text(row, "url", "url"),
        thumbnail=coerce_text(_field(row, "thumbnail")),
        order=coerce_int(_field(row, "order"), default=position),
    )


def normalize_training(row: Mapping[str, Any], position: int = 0) -> Training:
    return Training(
        id=coerce_text(_field(row, "id")),
        title=_required_text(row, "title", "title"),
        description=coerce_text(_field(row, "description")),
        category=coerce_text(_field(row, "category")),
        image_url=coerce_text(_field(row, "imageUrl", "image_url")),
        bullets=coerce_list(_field(row, "bullets")),
        tags=coerce_list(_field(row, "tags")),
        cta_text=coerce_text(_field(row, "ctaText", "cta_text")),
        cta_link=coerce_text(_field(row, "ctaLink", "cta_link")),
        badge=coerce_text(_field(row, "badge")),
        order=coerce_int(_field(row, "order"), default=position),
        status=coerce_choice(_field(row, "status"), ("active", "draft"), "draft"),
    )


NORMALIZERS: Dict[Collection, Callable[[Mapping[str, Any], int], Record]] = {
    Collection.ARTICLES: normalize_article,
    Collection.EVENTS: normalize_event,
    Collection.POPUPS: normalize_popup,
    Collection.BROCHURES: normalize_brochure,
    Collection.TRAININGS: normalize_training,
}


def normalize_row(
    collection: Collection, row: Any, position: int
) -> Record:
    """Normalize one row or raise ValidationError describing why it is unusable."""
    if not isinstance(row, Mapping):
        raise ValidationError(
            f"row is {type(row).__name__}, not an object",
            collection=collection.value,
            position=position,
        )
    try:
        return NORMALIZERS[collection](row, position)
    except ValidationError as exc:
        raise ValidationError(
            str(exc), collection=collection.value, position=position
        ) from exc
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"{exc.error_count()} invalid field(s)",
            collection=collection.value,
            position=position,
        ) from exc


def normalize(
    collection: Collection | str, rows: Optional[Iterable[Any]]
) -> Tuple[Record, ...]:
    """Normalize a whole collection, dropping unusable rows instead of failing."""
    collection = Collection.parse(collection)
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        if rows is not None:
            logger.warning(f"Ignoring {collection.value} rows of type {type(rows).__name__}")
        rows = ()
    records: list[Record] = []
    for position, row in enumerate(rows):
        try:
            records.append(normalize_row(collection, row, position))
        except ValidationError as exc:
            logger.warning(f"Dropping {collection.value} row {position}: {exc}")
    return tuple(records)
