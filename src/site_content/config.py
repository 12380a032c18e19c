"""Configuration helpers for the content synchronization layer."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    content_store_url: str | None = Field(
        None,
        validation_alias=AliasChoices("CONTENT_STORE_URL", "GAS_WEB_APP_URL"),
        description="Endpoint of the spreadsheet-backed content store.",
    )
    content_store_token: str | None = Field(
        None,
        validation_alias=AliasChoices("CONTENT_STORE_TOKEN", "GAS_API_TOKEN"),
        description="Access token sent with every content request.",
    )
    content_freshness_seconds: float = Field(
        300.0,
        description="How long a fetched collection is served without refetching.",
    )
    content_retry_after_seconds: float = Field(
        30.0,
        description=(
            "After a failed refresh, wait this long before trying the store again. "
            "Set to 0 to retry on every request."
        ),
    )
    content_timeout_seconds: float = Field(
        8.0,
        description=(
            "Per-request timeout; keep it below the hosting platform's request limit."
        ),
    )
    content_user_agent: str = Field("site-content/0.1", description="User-Agent header.")
    content_fetch_workers: int = Field(
        5, description="Threads used to load collections in parallel."
    )
    brochure_fallback_url: str = Field(
        "#", description="Catalogue link used when no brochure is published."
    )
    log_level: str = Field("INFO", description="loguru level for the stderr sink.")


def get_settings() -> Settings:
    """Return a settings instance read from the current environment."""
    return Settings()


def require_content_store(settings: Settings) -> Settings:
    """Fail fast when the content store endpoint or token is not configured."""
    missing = []
    if not (settings.content_store_url or "").strip():
        missing.append("CONTENT_STORE_URL")
    if not (settings.content_store_token or "").strip():
        missing.append("CONTENT_STORE_TOKEN")
    if missing:
        raise ConfigurationError(missing)
    return settings
