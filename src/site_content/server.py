"""FastAPI service exposing render-ready content views to page renderers."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status

from . import queries
from .config import Settings, get_settings, require_content_store
from .logging import setup_logging
from .models import Article, Collection, Event, Popup
from .repository import ContentRepository, build_repository


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    repository: Optional[ContentRepository] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the app. Without an injected repository, configuration is checked
    during startup so a missing endpoint/token fails the boot, not a request.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or get_settings()
        setup_logging(resolved.log_level)
        app.state.settings = resolved
        if repository is None:
            require_content_store(resolved)
            app.state.repository = build_repository(resolved)
        else:
            app.state.repository = repository
        try:
            yield
        finally:
            if repository is None:
                app.state.repository.close()

    app = FastAPI(title="Site Content", lifespan=lifespan)

    def get_repository(request: Request) -> ContentRepository:
        return request.app.state.repository

    def get_app_settings(request: Request) -> Settings:
        return request.app.state.settings

    @app.get("/health")
    def health(repo: ContentRepository = Depends(get_repository)) -> Dict[str, Any]:
        return {"status": "ok", "collections": repo.cache.status()}

    @app.get("/content/articles/latest")
    def latest_articles(
        limit: int = Query(3, ge=0, le=100),
        repo: ContentRepository = Depends(get_repository),
    ) -> List[Article]:
        return list(queries.latest_articles(repo.articles(), limit))

    @app.get("/content/articles/{slug}")
    def article_by_slug(
        slug: str, repo: ContentRepository = Depends(get_repository)
    ) -> Article:
        article = queries.find_by_slug(queries.displayable_articles(repo.articles()), slug)
        if article is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Article not found."
            )
        return article

    @app.get("/content/events/featured")
    def featured_events(
        limit: int = Query(3, ge=0, le=100),
        repo: ContentRepository = Depends(get_repository),
    ) -> List[Event]:
        return list(queries.featured_events(repo.events(), _now(), limit))

    @app.get("/content/popup")
    def popup(repo: ContentRepository = Depends(get_repository)) -> Optional[Popup]:
        return queries.current_popup(repo.popups(), _now())

    @app.get("/content/brochure")
    def brochure(
        repo: ContentRepository = Depends(get_repository),
        app_settings: Settings = Depends(get_app_settings),
    ) -> Dict[str, str]:
        url = queries.primary_brochure_url(
            repo.brochures(), app_settings.brochure_fallback_url
        )
        return {"url": url}

    @app.get("/content/{collection}")
    def collection_records(
        collection: str, repo: ContentRepository = Depends(get_repository)
    ) -> List[Dict[str, Any]]:
        try:
            resolved = Collection.parse(collection)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        return [record.model_dump(mode="json") for record in repo.get_all(resolved)]

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "site_content.server:create_app",
        factory=True,
        host=os.getenv("CONTENT_HOST", "0.0.0.0"),
        port=int(os.getenv("CONTENT_PORT", "8000")),
        reload=os.getenv("CONTENT_RELOAD", "false").lower() == "true",
    )
