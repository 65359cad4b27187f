"""Application settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    debug_mode: bool = False
    catalog_source: str = "in_memory"  # in_memory or http
    catalog_csv_path: str = ""  # Empty means data/catalog.csv under the project root
    catalog_api_base_url: str = "https://auctionsapi.com/api"
    catalog_api_key: str = ""
    catalog_api_timeout_seconds: float = 10
    catalog_api_max_attempts: int = 3
    catalog_api_backoff_base_ms: int = 500
    option_debounce_ms: int = 300
    search_cap: int = 1000
    default_page_size: int = 50
    # None: an empty network option list never replaces a non-empty fallback
    trust_empty_options_after_seconds: Optional[float] = None
    option_cache_enabled: bool = False
    option_cache_ttl_seconds: int = 300
    redis_url: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
    )


settings = Settings()
