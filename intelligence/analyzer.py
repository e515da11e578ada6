"""Profile analyzer: quiz profile -> searchable Preferences.

extract_preferences is a pure function. It performs no I/O, never raises for
sparse or odd input, and returns byte-identical output for identical input,
which keeps cache keys stable across requests.

Keyword sets are emitted in a fixed order:

    industry (0.30) -> policy topics (0.25 each) -> regions (0.20 each)
    -> investment (0.15) -> company (0.10) -> custom stakes (0.15)
"""

import logging
from typing import Any, Iterable

from models.profile import UserProfile
from models.query import KeywordSet, KeywordSetType, Preferences, Priority, SortBy, UserSegment
from intelligence import taxonomy

logger = logging.getLogger(__name__)

TIME_TO_PAGE_SIZE = {
    "5-10 minutes": 20,
    "10-20 minutes": 35,
    "20-30 minutes": 50,
    "30+ minutes": 75,
}
DEFAULT_PAGE_SIZE = 35

RELEVANCY_EXPERTISE = frozenset({"Advanced", "Expert"})

# Keyword set weights
INDUSTRY_WEIGHT = 0.30
POLICY_WEIGHT = 0.25
GEOGRAPHIC_WEIGHT = 0.20
INVESTMENT_WEIGHT = 0.15
COMPANY_WEIGHT = 0.10
CUSTOM_WEIGHT = 0.15


def coerce_profile(profile: UserProfile | dict[str, Any] | None) -> UserProfile:
    """Accept a UserProfile or a raw quiz payload."""
    if isinstance(profile, UserProfile):
        return profile
    return UserProfile.model_validate(profile or {})


def _dedupe(terms: Iterable[str]) -> tuple[str, ...]:
    """Drop blanks and duplicates, preserving first occurrence."""
    return tuple(dict.fromkeys(t for t in terms if t))


def industry_keywords(industry: str) -> tuple[str, ...]:
    return taxonomy.INDUSTRY_KEYWORDS.get(industry) or (industry.lower(),)


def policy_keywords(topic: str) -> tuple[str, ...]:
    return taxonomy.POLICY_KEYWORDS.get(topic) or (topic,)


def geographic_keywords(region: str) -> tuple[str, ...]:
    return taxonomy.REGION_KEYWORDS.get(region) or (region.lower(),)


def company_keywords(company: str) -> tuple[str, ...]:
    return taxonomy.COMPANY_KEYWORDS.get(company) or (company,)


def investment_keywords(details: str) -> tuple[str, ...]:
    """Base market terms plus bundles triggered by the portfolio description."""
    text = details.lower()
    terms = list(taxonomy.INVESTMENT_BASE_KEYWORDS)
    for triggers, bundle in taxonomy.INVESTMENT_TRIGGERS:
        if any(t in text for t in triggers):
            terms.extend(bundle)
    return _dedupe(terms)


def custom_stake_keywords(profile: UserProfile) -> tuple[str, ...]:
    """Keywords for free-text stakes.

    Each stake's name and description are scanned for domain triggers; matched
    bundles are unioned and the literal stake text is appended.
    """
    terms: list[str] = []
    for stake in profile.custom_stakes:
        text = f"{stake.name} {stake.description}".lower()
        for triggers, bundle in taxonomy.CUSTOM_STAKE_TRIGGERS:
            if any(t in text for t in triggers):
                terms.extend(bundle)
        terms.append(stake.text)
    return _dedupe(terms)


def determine_user_segment(profile: UserProfile | dict[str, Any]) -> UserSegment:
    """Classify a profile into its per-user tuning class.

    Decision table (first match wins):
        Expert and portfolio and 3+ topics -> power_user
        Advanced or portfolio              -> engaged_user
        2+ topics                          -> topic_focused
        otherwise                          -> general_user
    """
    profile = coerce_profile(profile)
    expertise = profile.expertise or "Intermediate"
    has_portfolio = profile.investments.has_portfolio
    topic_count = len(profile.topics)

    if expertise == "Expert" and has_portfolio and topic_count >= 3:
        return UserSegment.POWER_USER
    if expertise == "Advanced" or has_portfolio:
        return UserSegment.ENGAGED_USER
    if topic_count >= 2:
        return UserSegment.TOPIC_FOCUSED
    return UserSegment.GENERAL_USER


def generate_keyword_sets(profile: UserProfile) -> tuple[KeywordSet, ...]:
    """Build the ordered keyword sets for a profile."""
    sets: list[KeywordSet] = []
    career = profile.career

    if career.industry:
        sets.append(KeywordSet(
            type=KeywordSetType.INDUSTRY,
            priority=Priority.HIGH,
            weight=INDUSTRY_WEIGHT,
            keywords=industry_keywords(career.industry),
        ))

    for topic in profile.topics:
        if not topic:
            continue
        sets.append(KeywordSet(
            type=KeywordSetType.POLICY,
            topic=topic,
            priority=Priority.HIGH,
            weight=POLICY_WEIGHT,
            keywords=policy_keywords(topic),
        ))

    for region in profile.regions:
        if not region:
            continue
        sets.append(KeywordSet(
            type=KeywordSetType.GEOGRAPHIC,
            region=region,
            priority=Priority.MEDIUM,
            weight=GEOGRAPHIC_WEIGHT,
            keywords=geographic_keywords(region),
        ))

    if profile.investments.has_portfolio and profile.investments.details:
        sets.append(KeywordSet(
            type=KeywordSetType.INVESTMENT,
            priority=Priority.MEDIUM,
            weight=INVESTMENT_WEIGHT,
            keywords=investment_keywords(profile.investments.details),
        ))

    if career.company:
        sets.append(KeywordSet(
            type=KeywordSetType.COMPANY,
            priority=Priority.MEDIUM,
            weight=COMPANY_WEIGHT,
            keywords=company_keywords(career.company),
        ))

    if profile.custom_stakes:
        stake_terms = custom_stake_keywords(profile)
        if stake_terms:
            sets.append(KeywordSet(
                type=KeywordSetType.CUSTOM,
                priority=Priority.MEDIUM,
                weight=CUSTOM_WEIGHT,
                keywords=stake_terms,
            ))

    return tuple(sets)


def page_size_for(time_available: str) -> int:
    return TIME_TO_PAGE_SIZE.get(time_available, DEFAULT_PAGE_SIZE)


def sort_by_for(expertise: str) -> SortBy:
    return SortBy.RELEVANCY if expertise in RELEVANCY_EXPERTISE else SortBy.PUBLISHED_AT


def trusted_domains_for(industry: str) -> tuple[str, ...]:
    domains = taxonomy.TRUSTED_DOMAINS + taxonomy.INDUSTRY_TRUSTED_DOMAINS.get(industry, ())
    return domains[:taxonomy.MAX_DOMAINS]


def extract_preferences(profile: UserProfile | dict[str, Any] | None) -> Preferences:
    """Extract searchable preferences from a quiz profile.

    Args:
        profile: UserProfile or raw quiz dict (camelCase or snake_case keys)

    Returns:
        Preferences with keyword sets and provider parameters

    Example:
        >>> prefs = extract_preferences({"timeAvailable": "30+ minutes"})
        >>> prefs.page_size
        75
    """
    profile = coerce_profile(profile)
    career = profile.career

    keyword_sets = generate_keyword_sets(profile)
    preferences = Preferences(
        keyword_sets=keyword_sets,
        domains=trusted_domains_for(career.industry),
        exclude_domains=taxonomy.SATIRE_DOMAINS,
        language="en",
        sort_by=sort_by_for(profile.expertise),
        page_size=page_size_for(profile.time_available),
        user_segment=determine_user_segment(profile),
        expertise_level=profile.expertise or "Intermediate",
        time_available=profile.time_available or "10-20 minutes",
        regions=tuple(profile.regions),
        location=profile.location,
        industry=career.industry,
        profession=profile.profession or career.role,
        company=career.company,
        policy_topics=tuple(profile.topics),
        has_investments=profile.investments.has_portfolio,
        investment_details=profile.investments.details,
        personal_stakes={
            "religion": profile.personal.religion,
            "ethnicity": profile.personal.ethnicity,
            "nationality": profile.personal.nationality,
        },
    )

    logger.debug(
        "Preferences extracted | user=%s segment=%s sets=%d keywords=%d page_size=%d",
        profile.display_name, preferences.user_segment.value,
        len(keyword_sets), preferences.total_keywords, preferences.page_size,
    )
    return preferences
