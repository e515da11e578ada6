"""User profile models built from the onboarding quiz.

A UserProfile is the immutable input to the user intelligence layer. The quiz
front end posts camelCase JSON (``hasPortfolio``, ``customStakes``,
``timeAvailable``); every model here accepts either the camelCase wire name or
the snake_case attribute name.

Quiz payloads are frequently sparse. Any field sent as ``null``, at any depth,
takes its default, and ``null`` list items are dropped, so downstream analysis
never has to guard against ``None``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Accepted quiz values (informational - unknown values are tolerated)
EXPERTISE_LEVELS = ("Beginner", "Intermediate", "Advanced", "Expert")
TIME_AVAILABLE_OPTIONS = ("5-10 minutes", "10-20 minutes", "20-30 minutes", "30+ minutes")


class _QuizModel(BaseModel):
    """Base for quiz models: camelCase aliases, frozen, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Career(_QuizModel):
    industry: str = ""
    company: str = ""
    role: str = ""


class Investments(_QuizModel):
    has_portfolio: bool = False
    details: str = ""


class PersonalStakes(_QuizModel):
    religion: str = ""
    ethnicity: str = ""
    nationality: str = ""


class CustomStake(_QuizModel):
    """A free-text area the user cares about (e.g. "Rental property in Ohio")."""

    name: str = ""
    description: str = ""

    @property
    def text(self) -> str:
        """The literal stake text: name, falling back to description."""
        return self.name or self.description


class UserProfile(_QuizModel):
    """A user's quiz answers.

    Attributes:
        id: Stable user identifier
        name: Display name (used only for logging)
        career: Industry, company and role
        investments: Portfolio flag and free-text holdings description
        personal: Optional personal context
        custom_stakes: Free-text stake areas
        regions: Geographic regions of interest (e.g. "Europe")
        topics: Policy topics of interest (e.g. "Climate Policy")
        expertise: One of EXPERTISE_LEVELS
        time_available: One of TIME_AVAILABLE_OPTIONS

    Example:
        >>> profile = UserProfile.model_validate({
        ...     "id": "u1",
        ...     "expertise": "Expert",
        ...     "investments": {"hasPortfolio": True, "details": "tech stocks"},
        ...     "topics": ["Climate Policy"],
        ... })
        >>> profile.investments.has_portfolio
        True
    """

    id: str = Field(default="", description="User identifier")
    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Contact email")
    profession: str = Field(default="", description="Self-described profession")
    location: str = Field(default="", description="Free-text location")
    career: Career = Field(default_factory=Career)
    investments: Investments = Field(default_factory=Investments)
    personal: PersonalStakes = Field(default_factory=PersonalStakes)
    custom_stakes: list[CustomStake] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    expertise: str = Field(default="Intermediate", description="Self-rated expertise")
    time_available: str = Field(default="10-20 minutes", description="Daily reading time")

    @field_validator("custom_stakes", "regions", "topics", mode="before")
    @classmethod
    def _drop_null_items(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value

    @property
    def display_name(self) -> str:
        return self.name or self.id or "Anonymous"

    def __str__(self) -> str:
        return f"UserProfile({self.display_name}, {self.expertise})"
