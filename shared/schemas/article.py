from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Fixed set of categories a feed source can be filed under."""

    NEWS = "news"
    GAMING = "gaming"
    TECHNOLOGY = "technology"
    ENTERTAINMENT = "entertainment"


class AggregationMode(str, Enum):
    """How the merged article list is ordered before it is capped."""

    SHUFFLED = "shuffled"
    RECENCY_SORTED = "recency-sorted"


class FeedSource(BaseModel):
    url: str = Field(..., description="RSS/Atom feed URL")
    category: Category = Field(..., description="Category every article of this feed is filed under")
    source: str = Field(..., description="Human-readable feed name (e.g. 'BBC News')")

    model_config = ConfigDict(frozen=True)


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, description="Display title")
    summary: str = Field(..., description="Plain-text excerpt")
    category: Category = Field(..., description="Category of the originating feed")
    external_url: str = Field(..., alias="externalUrl", description="Link to the full article or '#'")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Representative image, if any")
    published_at: datetime = Field(..., alias="publishedAt", description="Publication timestamp")
    source: str = Field(..., description="Name of the originating feed")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Article(ArticleCreate):
    id: str = Field(..., description="Unique article identifier")

    def to_wire(self) -> dict:
        """JSON-ready dict in the camelCase shape served to the front-end."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RefreshSummary(BaseModel):
    message: str
    count: int
