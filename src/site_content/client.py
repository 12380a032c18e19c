"""HTTP client for the spreadsheet-backed content store."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .config import Settings, require_content_store
from .errors import AuthError, MalformedResponseError, NetworkError
from .models import Collection
from .schema import validate_rows

_AUTH_HINTS = ("unauthorized", "unauthorised", "forbidden", "token")


class ContentStoreClient:
    """Fetch raw rows for one collection per request.

    Every failure is raised as NetworkError, AuthError or MalformedResponseError.
    There is no retry here; fallback is the cache's job.
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        *,
        timeout: float = 8.0,
        user_agent: str = "site-content/0.1",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self._token = token
        self._http = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {token}",
                "User-Agent": user_agent,
            },
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None
    ) -> "ContentStoreClient":
        require_content_store(settings)
        return cls(
            settings.content_store_url,
            settings.content_store_token,
            timeout=settings.content_timeout_seconds,
            user_agent=settings.content_user_agent,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ContentStoreClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch_collection(self, collection: Collection | str) -> List[Dict[str, Any]]:
        collection = Collection.parse(collection)
        name = collection.value
        # Apps Script web apps cannot read request headers, so the token also
        # travels as a query parameter.
        params = {"sheet": collection.sheet, "action": "getAll", "token": self._token}

        try:
            response = self._http.get(self.endpoint, params=params)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{name}: request timed out", collection=name) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(f"{name}: {exc}", collection=name) from exc

        if response.status_code in (401, 403):
            raise AuthError(
                f"{name}: credentials rejected (HTTP {response.status_code})",
                collection=name,
            )
        if not response.is_success:
            raise NetworkError(
                f"{name}: HTTP {response.status_code} {response.reason_phrase}",
                collection=name,
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponseError(
                f"{name}: response is not JSON", collection=name
            ) from exc

        if isinstance(payload, dict) and payload.get("error"):
            message = str(payload["error"])
            if any(hint in message.lower() for hint in _AUTH_HINTS):
                raise AuthError(f"{name}: {message}", collection=name)
            raise MalformedResponseError(f"{name}: store error: {message}", collection=name)

        try:
            rows = validate_rows(payload)
        except ValueError as exc:
            raise MalformedResponseError(f"{name}: {exc}", collection=name) from exc

        logger.debug(f"Fetched {len(rows)} {name} row(s) from {collection.sheet}")
        return rows
