"""Multi-user cohort segmentation.

Cohorts bucket a batch of profiles so that shared queries can be planned per
audience. A cohort is a different notion from the per-user UserSegment
(power_user, engaged_user, ...) computed by the analyzer: cohorts describe
*who* the reader is, segments describe *how much* they read.

Cohort Rules (first match wins):
    investors      holds a portfolio
    academics      academic role/profession, or Education industry
    professionals  names an industry or employer
    general        everyone else
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from models.profile import UserProfile
from intelligence.analyzer import coerce_profile

logger = logging.getLogger(__name__)


class Cohort(str, Enum):
    INVESTORS = "investors"
    PROFESSIONALS = "professionals"
    ACADEMICS = "academics"
    GENERAL = "general"


_ACADEMIC_MARKERS = ("professor", "researcher", "lecturer", "academic", "phd", "student", "scientist")


@dataclass(frozen=True)
class CohortCharacteristics:
    """Editorial defaults for a cohort."""

    typical_interests: tuple[str, ...] = ()
    preferred_sources: tuple[str, ...] = ()
    update_frequency: str = "daily"
    content_depth: str = "medium"


COHORT_CHARACTERISTICS: dict[Cohort, CohortCharacteristics] = {
    Cohort.INVESTORS: CohortCharacteristics(
        typical_interests=("markets", "earnings", "monetary policy", "regulation"),
        preferred_sources=("bloomberg.com", "wsj.com", "ft.com", "reuters.com"),
        update_frequency="hourly",
        content_depth="deep",
    ),
    Cohort.PROFESSIONALS: CohortCharacteristics(
        typical_interests=("industry regulation", "competitors", "labor policy"),
        preferred_sources=("reuters.com", "axios.com", "politico.com"),
        update_frequency="daily",
        content_depth="medium",
    ),
    Cohort.ACADEMICS: CohortCharacteristics(
        typical_interests=("research funding", "education policy", "science policy"),
        preferred_sources=("npr.org", "bbc.com", "nytimes.com"),
        update_frequency="daily",
        content_depth="deep",
    ),
    Cohort.GENERAL: CohortCharacteristics(
        typical_interests=("headlines", "elections", "economy"),
        preferred_sources=("apnews.com", "bbc.com", "npr.org"),
        update_frequency="daily",
        content_depth="light",
    ),
}


@dataclass
class CohortSegmentation:
    """Result of segment_users: profiles bucketed by cohort."""

    segments: dict[Cohort, list[UserProfile]] = field(
        default_factory=lambda: {c: [] for c in Cohort}
    )

    @property
    def characteristics(self) -> dict[Cohort, CohortCharacteristics]:
        return {c: COHORT_CHARACTERISTICS[c] for c in self.segments}

    def sizes(self) -> dict[str, int]:
        return {c.value: len(members) for c, members in self.segments.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "segments": {c.value: [p.id for p in members] for c, members in self.segments.items()},
            "sizes": self.sizes(),
        }


def _is_academic(profile: UserProfile) -> bool:
    if profile.career.industry == "Education":
        return True
    text = f"{profile.profession} {profile.career.role}".lower()
    return any(marker in text for marker in _ACADEMIC_MARKERS)


def get_user_cohort(profile: UserProfile | dict[str, Any]) -> Cohort:
    """Assign one profile to its cohort. Pure and idempotent."""
    profile = coerce_profile(profile)
    if profile.investments.has_portfolio:
        return Cohort.INVESTORS
    if _is_academic(profile):
        return Cohort.ACADEMICS
    if profile.career.industry or profile.career.company:
        return Cohort.PROFESSIONALS
    return Cohort.GENERAL


def segment_users(profiles: Iterable[UserProfile | dict[str, Any]]) -> CohortSegmentation:
    """Bucket a batch of profiles by cohort.

    Every cohort key is present in the result, possibly with an empty list.
    Input order is preserved within each bucket.
    """
    result = CohortSegmentation()
    for raw in profiles:
        profile = coerce_profile(raw)
        result.segments[get_user_cohort(profile)].append(profile)

    logger.info("Users segmented | %s", " ".join(f"{k}={v}" for k, v in result.sizes().items()))
    return result


def get_cohort_characteristics(cohort: Cohort | str) -> CohortCharacteristics:
    return COHORT_CHARACTERISTICS[Cohort(cohort)]


def identify_high_value_cohorts(profiles: Iterable[UserProfile | dict[str, Any]]) -> list[Cohort]:
    """Non-empty investor/professional cohorts, largest first."""
    segmentation = segment_users(profiles)
    candidates = [
        c for c in (Cohort.INVESTORS, Cohort.PROFESSIONALS)
        if segmentation.segments[c]
    ]
    return sorted(candidates, key=lambda c: len(segmentation.segments[c]), reverse=True)
