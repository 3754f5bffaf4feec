"""
Configuration management for the marketplace search service.

This module provides centralized configuration management supporting:
- Environment variables and .env files
- Elasticsearch index connection settings
- Optional Redis cache (falls back to in-memory cache when unset)
- Cache TTLs for each read path
"""

from functools import lru_cache
from typing import Any, Dict, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    """
    Search service settings with smart defaults for local development.
    """

    # Environment Detection
    ENVIRONMENT: str = Field(
        default="local",
        description="Environment (local/development/production)"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="console",
        description="Log format (json/console)"
    )

    # Search Index (Elasticsearch)
    ELASTICSEARCH_URL: str = Field(
        default="http://localhost:9200",
        description="Elasticsearch node URL"
    )
    ELASTICSEARCH_INDEX: str = Field(
        default="listings",
        description="Name of the listings index"
    )
    ELASTICSEARCH_REQUEST_TIMEOUT: float = Field(
        default=10.0,
        description="Per-request timeout in seconds for index calls"
    )

    # Cache Configuration (Redis or Memory)
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis URL (optional, uses memory cache if not set)"
    )
    MEMORY_CACHE_MAX_SIZE: int = Field(
        default=10000,
        description="Maximum entries held by the in-memory cache"
    )
    SEARCH_CACHE_TTL: int = Field(
        default=300,  # 5 minutes
        description="Primary search result cache TTL in seconds"
    )
    SUGGESTION_CACHE_TTL: int = Field(
        default=60,
        description="Autocomplete suggestion cache TTL in seconds"
    )
    TRENDING_CACHE_TTL: int = Field(
        default=3600,  # 1 hour
        description="Trending searches cache TTL in seconds"
    )

    # Search defaults
    DEFAULT_PAGE_SIZE: int = Field(
        default=20,
        description="Listings per page when no limit is given"
    )
    DEFAULT_SEARCH_RADIUS_KM: float = Field(
        default=10,
        description="Geo search radius in km when no radius is given"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment name."""
        v = v.lower()
        if v not in ('local', 'development', 'staging', 'production'):
            logger.warning(f"Unknown environment: {v}, defaulting to 'local'")
            return 'local'
        return v

    @field_validator('SEARCH_CACHE_TTL', 'SUGGESTION_CACHE_TTL', 'TRENDING_CACHE_TTL')
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """Cache TTLs must be positive for SETEX."""
        if v <= 0:
            raise ValueError("cache TTL must be a positive number of seconds")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == 'production'

    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == 'local'

    def is_redis_configured(self) -> bool:
        return bool(self.REDIS_URL)

    def get_cache_ttls(self) -> Dict[str, Any]:
        """TTL table keyed by read path."""
        return {
            "search": self.SEARCH_CACHE_TTL,
            "suggestions": self.SUGGESTION_CACHE_TTL,
            "trending": self.TRENDING_CACHE_TTL,
        }


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file and returns
    a validated Settings instance.
    """
    settings = Settings()

    logger.info(
        "Configuration ready",
        environment=settings.ENVIRONMENT,
        elasticsearch_url=settings.ELASTICSEARCH_URL,
        index=settings.ELASTICSEARCH_INDEX,
        redis_configured=settings.is_redis_configured()
    )

    return settings
