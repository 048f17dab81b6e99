"""
fedsearch Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "fedsearch"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # =========================================================================
    # ELASTICSEARCH (Full-Text Search)
    # =========================================================================
    # Common convention with elasticsearch is one string with both host and port
    ELASTICSEARCH_HOST: str = "localhost:9200"
    ELASTICSEARCH_PORT: Optional[int] = None
    ELASTICSEARCH_URL: Optional[str] = None
    ELASTICSEARCH_PING_TIMEOUT: float = 5.0
    ELASTICSEARCH_TIMEOUT: float = 10.0

    # =========================================================================
    # SEARCH INDEX
    # =========================================================================
    SEARCH_BASE_NAME: str = "fedsearch"
    SEARCH_FIELDS: List[str] = [
        "title",
        "slug",
        "path",
        "tags",
        "type",
        "low_search_text",
        "high_search_text",
    ]
    SEARCH_ADD_FIELDS: List[str] = []
    SEARCH_BOOSTS: Dict[str, float] = {}
    SEARCH_INDEX_SETTINGS: Dict[str, Any] = {}
    SEARCH_ANALYZER: Optional[Dict[str, Any]] = None
    SEARCH_LOCALE_INDEX_SETTINGS: Dict[str, Dict[str, Any]] = {}
    SEARCH_ANALYZERS: Dict[str, Dict[str, Any]] = {}
    # Empty means there is no locale subsystem, everything goes to "default"
    SEARCH_LOCALES: List[str] = []
    SEARCH_BATCH_SIZE: int = 1000
    SEARCH_PAGE_SIZE: int = 50
    SEARCH_QUERY_MODE: str = "simple_query_string"
    SEARCH_VERBOSE: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def elasticsearch_url(self) -> str:
        if self.ELASTICSEARCH_URL:
            return self.ELASTICSEARCH_URL
        host = self.ELASTICSEARCH_HOST
        if self.ELASTICSEARCH_PORT:
            host = f"{host.split(':')[0]}:{self.ELASTICSEARCH_PORT}"
        if "://" not in host:
            host = f"http://{host}"
        return host


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
