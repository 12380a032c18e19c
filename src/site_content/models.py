"""Normalized, render-ready records for each content collection."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# Sentinel for a missing or unparseable date: sorts last, never "upcoming".
OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def has_date(value: datetime) -> bool:
    return value != OLDEST


class Collection(str, Enum):
    """Named collections the content store exposes, with their sheet names."""

    ARTICLES = "articles"
    EVENTS = "events"
    POPUPS = "popups"
    BROCHURES = "brochures"
    TRAININGS = "trainings"

    @property
    def sheet(self) -> str:
        return _SHEETS[self]

    @classmethod
    def parse(cls, name: Union[str, "Collection"]) -> "Collection":
        """Accept a member, its value, or its sheet name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key in (member.value, member.sheet.lower()):
                return member
        raise ValueError(f"Unknown collection: {name!r}")


_SHEETS = {
    Collection.ARTICLES: "Blog",
    Collection.EVENTS: "Events",
    Collection.POPUPS: "Popups",
    Collection.BROCHURES: "Plaquettes",
    Collection.TRAININGS: "Formations",
}


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""


class Article(_Record):
    """A blog post; only published posts with a real timestamp are displayed."""

    title: str
    slug: str = ""
    content: str = ""
    excerpt: str = ""
    author: str = ""
    cover_image: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    status: Literal["draft", "published"] = "draft"
    published_at: datetime = Field(
        OLDEST, description="Publication timestamp; OLDEST when unknown."
    )


class Event(_Record):
    title: str
    description: str = ""
    location: str = ""
    image: str = ""
    registration_link: str = ""
    date: datetime = OLDEST
    status: Literal["draft", "published", "cancelled"] = "draft"
    is_pinned: bool = False


class Popup(_Record):
    """Promotional popup; at most one (the first active) is shown."""

    title: str = ""
    image: str = ""
    link: str = ""
    is_active: bool = False
    start_date: datetime = OLDEST
    end_date: datetime = OLDEST


class Brochure(_Record):
    name: str = ""
    description: str = ""
    url: str
    thumbnail: str = ""
    order: int = 0


class Training(_Record):
    title: str
    description: str = ""
    category: str = ""
    image_url: str = ""
    bullets: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    cta_text: str = ""
    cta_link: str = ""
    badge: str = ""
    order: int = 0
    status: Literal["active", "draft"] = "draft"


Record = Union[Article, Event, Popup, Brochure, Training]

RECORD_TYPES = {
    Collection.ARTICLES: Article,
    Collection.EVENTS: Event,
    Collection.POPUPS: Popup,
    Collection.BROCHURES: Brochure,
    Collection.TRAININGS: Training,
}
