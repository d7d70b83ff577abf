"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings; DATABASE_URL may point at
      sqlite+aiosqlite for a local run with DATABASE_CREATE_SCHEMA=true
    - Provider API keys are optional: a provider without its key degrades to "no results"
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://gamesync:gamesync@db:5432/gamesync"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs are postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_create_schema: bool = False

    # Outbound HTTP
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_base_delay_ms: int = 1000
    http_max_delay_ms: int = 30_000

    # Provider credentials
    steam_web_api_key: str | None = None
    rawg_api_key: str | None = None

    # Metadata
    metadata_enrichment_timeout_seconds: int = 300
    min_valid_description_length: int = 50
    max_description_length: int = 250
    metadata_search_result_limit: int = 50
    metadata_search_per_provider_limit: int = 10

    # Processing
    default_multiplayer_max_players: int = 4
    enrichment_max_concurrency: int = 2
    enrichment_queue_size: int = 100
    enrich_after_pull_sync: bool = True

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
