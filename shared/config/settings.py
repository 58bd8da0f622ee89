"""
Centralized configuration management for NewsDeck services.
Uses Pydantic Settings for validation and type safety.
"""

import json
from functools import lru_cache
from typing import Annotated, List, Optional
from urllib.parse import urlparse

from pydantic import Field, validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from shared.schemas.article import AggregationMode, FeedSource


DEFAULT_FEED_SOURCES = [
    # News sources
    {"url": "https://feeds.bbci.co.uk/news/rss.xml", "category": "news", "source": "BBC News"},
    {"url": "https://rss.cnn.com/rss/edition.rss", "category": "news", "source": "CNN"},
    {"url": "https://feeds.reuters.com/reuters/topNews", "category": "news", "source": "Reuters"},
    # Gaming sources
    {"url": "https://www.gamespot.com/feeds/mashup/", "category": "gaming", "source": "GameSpot"},
    {"url": "https://feeds.ign.com/ign/games-all", "category": "gaming", "source": "IGN Gaming"},
    {"url": "https://www.polygon.com/rss/index.xml", "category": "gaming", "source": "Polygon"},
    # Technology sources
    {"url": "https://feeds.feedburner.com/TechCrunch", "category": "technology", "source": "TechCrunch"},
    {"url": "https://www.wired.com/feed/rss", "category": "technology", "source": "Wired"},
    {"url": "https://feeds.arstechnica.com/arstechnica/index", "category": "technology", "source": "Ars Technica"},
    # Entertainment sources
    {"url": "https://feeds.feedburner.com/variety/headlines", "category": "entertainment", "source": "Variety"},
    {"url": "https://www.hollywoodreporter.com/feed/", "category": "entertainment", "source": "Hollywood Reporter"},
    {"url": "https://ew.com/feed/", "category": "entertainment", "source": "Entertainment Weekly"},
]


class AppBaseSettings(BaseSettings):
    """Base settings with shared configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ServiceSettings(AppBaseSettings):
    """Settings for the live aggregation API."""

    feed_sources: Annotated[List[FeedSource], NoDecode] = Field(
        default=[FeedSource(**s) for s in DEFAULT_FEED_SOURCES],
        validation_alias="FEED_SOURCES",
    )
    aggregation_mode: AggregationMode = Field(
        default=AggregationMode.SHUFFLED,
        validation_alias="AGGREGATION_MODE",
    )
    max_articles: int = Field(
        default=50,
        ge=1,
        validation_alias="MAX_ARTICLES",
    )
    max_entries_per_source: int = Field(
        default=10,
        ge=1,
        validation_alias="MAX_ENTRIES_PER_SOURCE",
    )
    summary_max_length: int = Field(
        default=130,
        ge=1,
        validation_alias="SUMMARY_MAX_LENGTH",
    )
    fetch_timeout: float = Field(
        default=10.0,
        gt=0,
        validation_alias="FETCH_TIMEOUT",
    )
    initial_refresh_delay: float = Field(
        default=1.0,
        ge=0,
        validation_alias="INITIAL_REFRESH_DELAY",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; NewsDeck/1.0; +RSS reader)",
        validation_alias="USER_AGENT",
    )
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["*"],
        validation_alias="CORS_ORIGINS",
    )
    health_feed_checks: int = Field(
        default=3,
        ge=0,
        validation_alias="HEALTH_FEED_CHECKS",
    )
    host: str = Field(
        default="0.0.0.0",
        validation_alias="HOST",
    )
    port: int = Field(
        default=5000,
        validation_alias="PORT",
    )

    @validator("feed_sources", pre=True)
    def parse_feed_sources(cls, v):
        """Accept the feed table as a JSON string."""
        if isinstance(v, str):
            return json.loads(v)
        return v

    @validator("cors_origins", pre=True)
    def parse_list_from_string(cls, v):
        """Parse comma-separated string into list if needed."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @validator("feed_sources")
    def validate_feed_sources(cls, v):
        """Validate that feed URLs are http(s) URLs."""
        for feed in v:
            parsed = urlparse(feed.url)
            if parsed.scheme not in ["http", "https"] or not parsed.netloc:
                raise ValueError(f"Feed URL must be an HTTP or HTTPS URL: {feed.url}")
        return v


class StaticSiteSettings(AppBaseSettings):
    """Settings for the build-time static JSON generator."""

    output_dir: str = Field(
        default="client/public",
        validation_alias="STATIC_OUTPUT_DIR",
    )
    aggregation_mode: AggregationMode = Field(
        default=AggregationMode.RECENCY_SORTED,
        validation_alias="STATIC_AGGREGATION_MODE",
    )
    max_entries_per_source: int = Field(
        default=5,
        ge=1,
        validation_alias="STATIC_MAX_ENTRIES_PER_SOURCE",
    )
    summary_max_length: int = Field(
        default=200,
        ge=1,
        validation_alias="STATIC_SUMMARY_MAX_LENGTH",
    )
    # None writes every entry the per-source limit lets through
    max_articles: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias="STATIC_MAX_ARTICLES",
    )


class LoggingSettings(AppBaseSettings):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )
    include_correlation_id: bool = Field(
        default=True,
        validation_alias="LOG_INCLUDE_CORRELATION_ID",
    )
    json_logs: bool = Field(
        default=False,
        validation_alias="JSON_LOGS",
    )


class Settings(AppBaseSettings):
    """Main settings class that combines all configuration sections."""

    service: ServiceSettings = Field(default_factory=ServiceSettings)
    static_site: StaticSiteSettings = Field(default_factory=StaticSiteSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    service_name: str = Field(
        default="newsdeck",
        validation_alias="SERVICE_NAME",
    )
    environment: str = Field(
        default="development",
        validation_alias="ENVIRONMENT",
    )
    version: str = Field(
        default="1.0.0",
        validation_alias="SERVICE_VERSION",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

