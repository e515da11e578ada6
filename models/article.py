"""Standardized article schema.

Every provider transforms its raw records into a StandardArticle. Downstream
consumers (briefing assembly, storage, the UI) only ever see this shape.

Category Design:
    A single category per article, assigned by keyword rules over the title and
    description. When several categories match, the first in this priority
    order wins:

        Politics > Business > Technology > Health > World > General

    General is the catch-all and never needs a keyword match.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArticleCategory(str, Enum):
    POLITICS = "Politics"
    BUSINESS = "Business"
    TECHNOLOGY = "Technology"
    HEALTH = "Health"
    WORLD = "World"
    GENERAL = "General"


# Highest priority first
CATEGORY_PRIORITY: tuple[ArticleCategory, ...] = (
    ArticleCategory.POLITICS,
    ArticleCategory.BUSINESS,
    ArticleCategory.TECHNOLOGY,
    ArticleCategory.HEALTH,
    ArticleCategory.WORLD,
    ArticleCategory.GENERAL,
)


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class _ArticleModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArticleEntities(_ArticleModel):
    """Named entities mentioned in the article."""

    companies: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)


class ArticleMetadata(_ArticleModel):
    word_count: int = Field(default=1, ge=0)
    reading_time: int = Field(default=1, ge=1, description="Minutes at 200 wpm")
    language: str = "en"
    sentiment: Sentiment = Sentiment.NEUTRAL


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StandardArticle(_ArticleModel):
    """A provider article in the standardized format.

    Attributes:
        id: ``<source>-<hash>`` identifier, stable for the same URL
        title: Headline
        summary: Short excerpt (provider description)
        content: Body text, possibly truncated by the provider
        category: One ArticleCategory
        source: Provider name (e.g. "NewsAPI")
        source_url: Canonical article URL
        date: Publication timestamp as reported by the provider (ISO 8601)
        author: Byline, when the provider supplies one
        publisher: Outlet name (e.g. "Reuters")
        image_url: Lead image URL
        tags: Lowercase keywords, category first
        entities: Companies, organizations, people and locations mentioned
        metadata: Word count, reading time, language, sentiment
        processed_at: When the transform ran
        raw: The untouched provider record
        is_fallback: True only for placeholder articles emitted on failure
    """

    id: str
    title: str
    summary: str = ""
    content: str = ""
    category: ArticleCategory = ArticleCategory.GENERAL
    source: str
    source_url: str = ""
    date: str = ""
    author: str | None = None
    publisher: str = ""
    image_url: str | None = Field(default=None, alias="urlToImage")
    tags: list[str] = Field(default_factory=list)
    entities: ArticleEntities = Field(default_factory=ArticleEntities)
    metadata: ArticleMetadata = Field(default_factory=ArticleMetadata)
    processed_at: datetime = Field(default_factory=_utc_now)
    raw: dict[str, Any] = Field(default_factory=dict)
    is_fallback: bool = False

    def __str__(self) -> str:
        return f"StandardArticle({self.id}, '{self.title[:50]}')"
