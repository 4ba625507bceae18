"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


class ConfigurationError(RuntimeError):
    """Raised when provider credentials are missing."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    database_url: str
    port: int = 8080
    search_ttl_days: int = 7
    details_ttl_days: int = 30
    default_search_radius: float = 16093.4  # 10 miles in meters
    max_results: int = 20
    region_label: str = "Texas"
    cache_atomic_writes: bool = True
    single_flight: bool = False
    db_pool_min: int = 1
    db_pool_max: int = 5


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_PLACES_API_KEY") or os.getenv("GOOGLE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")

    if not database_url:
        logger.warning("DATABASE_URL is not set; caching is disabled.")
    if not google_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; Google Places requests will fail.")

    return Settings(
        google_api_key=google_api_key,
        database_url=database_url,
        port=int(os.getenv("PORT", "8080")),
        search_ttl_days=int(os.getenv("SEARCH_CACHE_TTL_DAYS", "7")),
        details_ttl_days=int(os.getenv("DETAILS_CACHE_TTL_DAYS", "30")),
        default_search_radius=float(os.getenv("DEFAULT_SEARCH_RADIUS", "16093.4")),
        max_results=int(os.getenv("MAX_RESULTS", "20")),
        region_label=os.getenv("SEARCH_REGION_LABEL", "Texas").strip() or "Texas",
        cache_atomic_writes=_env_flag("CACHE_ATOMIC_WRITES", "true"),
        single_flight=_env_flag("LOOKUP_SINGLE_FLIGHT", "false"),
        db_pool_min=int(os.getenv("DB_POOL_MIN", "1")),
        db_pool_max=int(os.getenv("DB_POOL_MAX", "5")),
    )
