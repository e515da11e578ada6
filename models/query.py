"""Preference and query models for the user intelligence layer.

Model flow:
    UserProfile -> Preferences (analyzer) -> QueryPlan of ProviderQuery (builder)

Preferences carry one KeywordSet per interest (industry, each policy topic,
each region, ...). The builder composes those sets into Boolean query strings
for the article provider.

All models are frozen: the analyzer and builder are pure functions and the
serialized form of Preferences doubles as the cache key material.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class KeywordSetType(str, Enum):
    """Origin of a keyword set within the profile."""

    INDUSTRY = "industry"
    POLICY = "policy"
    GEOGRAPHIC = "geographic"
    INVESTMENT = "investment"
    COMPANY = "company"
    CUSTOM = "custom"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class UserSegment(str, Enum):
    """Per-user tuning class used to shape the primary query.

    Not to be confused with the multi-user Cohort buckets produced by
    intelligence.segments.segment_users.
    """

    POWER_USER = "power_user"       # Expert, invested, 3+ topics
    ENGAGED_USER = "engaged_user"   # Advanced or invested
    TOPIC_FOCUSED = "topic_focused" # 2+ topics
    GENERAL_USER = "general_user"   # Everyone else


class SortBy(str, Enum):
    RELEVANCY = "relevancy"
    PUBLISHED_AT = "publishedAt"


class QueryKind(str, Enum):
    """Which builder produced a ProviderQuery."""

    PRIMARY = "primary"
    TOPIC = "topic"
    INDUSTRY = "industry"
    INVESTMENT = "investment"
    GEOGRAPHIC = "geographic"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class KeywordSet(_WireModel):
    """A weighted group of search terms for one interest.

    Attributes:
        type: Which part of the profile produced the set
        topic: Policy topic name (policy sets only)
        region: Region name (geographic sets only)
        priority: high sets go in the primary OR group, medium in the +() group
        weight: Relative importance in [0, 1]
        keywords: Ordered terms; earlier terms are preferred when truncating
    """

    type: KeywordSetType
    topic: str | None = None
    region: str | None = None
    priority: Priority
    weight: float = Field(ge=0.0, le=1.0)
    keywords: tuple[str, ...] = ()


class Preferences(_WireModel):
    """Searchable preferences derived from a UserProfile.

    Produced deterministically by intelligence.analyzer.extract_preferences.
    """

    keyword_sets: tuple[KeywordSet, ...] = ()

    # Provider parameters
    domains: tuple[str, ...] = ()
    exclude_domains: tuple[str, ...] = ()
    language: str = "en"
    sort_by: SortBy = SortBy.PUBLISHED_AT
    page_size: int = 35

    # User context
    user_segment: UserSegment = UserSegment.GENERAL_USER
    expertise_level: str = "Intermediate"
    time_available: str = "10-20 minutes"
    regions: tuple[str, ...] = ()
    location: str = ""
    industry: str = ""
    profession: str = ""
    company: str = ""
    policy_topics: tuple[str, ...] = ()
    has_investments: bool = False
    investment_details: str = ""
    personal_stakes: dict[str, str] = Field(default_factory=dict)

    def sets_of(self, kind: KeywordSetType) -> list[KeywordSet]:
        """Return keyword sets of one type, in analyzer order."""
        return [s for s in self.keyword_sets if s.type == kind]

    def first_of(self, kind: KeywordSetType) -> KeywordSet | None:
        for s in self.keyword_sets:
            if s.type == kind:
                return s
        return None

    @property
    def total_keywords(self) -> int:
        return sum(len(s.keywords) for s in self.keyword_sets)


class ProviderQuery(_WireModel):
    """A single provider-ready search request.

    ``q`` is a Boolean expression in NewsAPI syntax (``OR``, ``+()``, ``-()``)
    and never exceeds 500 characters.
    """

    kind: QueryKind = QueryKind.PRIMARY
    label: str | None = Field(default=None, description="Topic name for topic variations")
    q: str = ""
    domains: str | None = None
    exclude_domains: str | None = None
    from_date: str | None = Field(default=None, alias="from")
    to_date: str | None = Field(default=None, alias="to")
    page_size: int = 35
    sort_by: SortBy = SortBy.PUBLISHED_AT
    language: str = "en"

    def to_params(self) -> dict[str, Any]:
        """Render as NewsAPI ``/everything`` request parameters."""
        params: dict[str, Any] = {
            "q": self.q,
            "pageSize": self.page_size,
            "sortBy": self.sort_by.value,
            "language": self.language,
        }
        if self.domains:
            params["domains"] = self.domains
        if self.exclude_domains:
            params["excludeDomains"] = self.exclude_domains
        if self.from_date:
            params["from"] = self.from_date
        if self.to_date:
            params["to"] = self.to_date
        return params


class QueryPlan(BaseModel):
    """Primary query plus topic/industry/investment/geographic variations."""

    model_config = ConfigDict(frozen=True)

    primary: ProviderQuery
    variations: tuple[ProviderQuery, ...] = ()

    @property
    def all_queries(self) -> list[ProviderQuery]:
        """Primary first, then variations in builder order."""
        return [self.primary, *self.variations]
