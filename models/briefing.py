"""Briefing model: the per-user result of one fetch cycle."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.article import StandardArticle
from models.query import UserSegment


class Briefing(BaseModel):
    """Articles assembled for one user.

    ``is_fallback`` is set when the provider could not be reached and the
    articles are placeholders; ``summary`` then explains what happened.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(description="Profile identifier")
    user_segment: UserSegment = Field(description="Per-user tuning class")
    cohort: str = Field(default="general", description="Multi-user cohort bucket")
    articles: list[StandardArticle] = Field(default_factory=list)
    summary: str = Field(default="", description="One-line description of the result")
    is_fallback: bool = False
    query_count: int = Field(default=0, description="Provider queries attempted")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
