"""Pydantic models for the Stakewire briefing pipeline.

UserProfile:
    Quiz answers (career, investments, regions, topics, expertise, time).

KeywordSet / Preferences:
    Weighted search terms and provider parameters derived from a profile.

ProviderQuery / QueryPlan:
    Provider-ready Boolean queries: one primary plus variations.

StandardArticle:
    Provider article transformed into the common schema.

Briefing:
    Articles assembled for one user, possibly a fallback.

Example:
    >>> from models import UserProfile
    >>> profile = UserProfile.model_validate({"id": "u1", "topics": ["Defense"]})
"""

from models.profile import UserProfile, Career, Investments, PersonalStakes, CustomStake
from models.query import (
    KeywordSet,
    KeywordSetType,
    Preferences,
    Priority,
    ProviderQuery,
    QueryKind,
    QueryPlan,
    SortBy,
    UserSegment,
)
from models.article import ArticleCategory, ArticleEntities, ArticleMetadata, Sentiment, StandardArticle
from models.briefing import Briefing

__all__ = [
    "UserProfile",
    "Career",
    "Investments",
    "PersonalStakes",
    "CustomStake",
    "KeywordSet",
    "KeywordSetType",
    "Preferences",
    "Priority",
    "ProviderQuery",
    "QueryKind",
    "QueryPlan",
    "SortBy",
    "UserSegment",
    "ArticleCategory",
    "ArticleEntities",
    "ArticleMetadata",
    "Sentiment",
    "StandardArticle",
    "Briefing",
]
