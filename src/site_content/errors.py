"""Typed failures raised by the content synchronization layer."""

from __future__ import annotations

from typing import Iterable, Optional


class ContentError(Exception):
    """Base class for every failure talking to or reading from the content store."""

    def __init__(self, message: str, *, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection = collection

    @property
    def kind(self) -> str:
        return type(self).__name__


class NetworkError(ContentError):
    """Transport failure, timeout, or a non-success HTTP status."""


class AuthError(ContentError):
    """The store rejected the configured credentials."""


class MalformedResponseError(ContentError):
    """The store answered, but not with a JSON array of row objects."""


class ValidationError(ContentError):
    """A single row could not be turned into a usable record."""

    def __init__(
        self,
        message: str,
        *,
        collection: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message, collection=collection)
        self.position = position


class ConfigurationError(Exception):
    """Required settings are missing; detected at startup, never at fetch time."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            f"Missing required configuration: {', '.join(self.missing)}. "
            "Set it in the environment or .env file."
        )
