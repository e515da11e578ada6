"""Query builder: Preferences -> provider-ready Boolean queries.

Query Shape (NewsAPI syntax):
    (a OR b OR c)        any of the high-priority terms
    +(d OR e)            must also mention one of these
    -(f OR g)            must not mention any of these

Each profile yields one primary query and several narrower variations:

    primary     industry + first policy topic, AND region/company, minus noise
    topic       one per policy topic, optionally AND up to 3 regions
    industry    industry terms AND company AND regulatory context
    investment  portfolio terms AND market-impact context
    geographic  top region terms AND policy context

Length Budget:
    NewsAPI rejects ``q`` longer than 500 characters. Every query passes
    through optimize_query_length, which trims on a group boundary where
    possible and always returns a balanced expression.

All builders take an optional ``now`` so date windows are reproducible.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable

from models.query import (
    KeywordSetType,
    Preferences,
    Priority,
    ProviderQuery,
    QueryKind,
    QueryPlan,
    SortBy,
    UserSegment,
)
from intelligence import taxonomy

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500
TRUNCATE_AT = 480
MIN_GROUP_BOUNDARY = 400

# Date windows (days back from now)
PRIMARY_WINDOW_DAYS = 7
TOPIC_WINDOW_DAYS = 3
INDUSTRY_WINDOW_DAYS = 5
INVESTMENT_WINDOW_DAYS = 3
GEOGRAPHIC_WINDOW_DAYS = 5

# Share of the primary page size given to each variation
INDUSTRY_PAGE_SHARE = 0.3
INVESTMENT_PAGE_SHARE = 0.25
GEOGRAPHIC_PAGE_SHARE = 0.2

SEGMENT_PAGE_SIZE_CAP = 100

_GROUPING_RE = re.compile(r"[()\"]")
_SPACE_RE = re.compile(r"\s+")
_TRAILING_OPERATOR_RE = re.compile(r"(\s+(OR|AND|NOT|[+-]))+\s*$")
_EMPTY_GROUP_RE = re.compile(r"\s*[+-]?\(\s*$")


def _utc_now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _days_ago(now: datetime, days: int) -> str:
    return (now - timedelta(days=days)).date().isoformat()


def _clean_term(term: str) -> str:
    """Strip parentheses and quotes so user text cannot unbalance a query."""
    return _SPACE_RE.sub(" ", _GROUPING_RE.sub(" ", term)).strip()


def or_group(terms: Iterable[str], prefix: str = "") -> str:
    """Join terms as ``prefix(a OR b ...)``; empty string if no terms."""
    cleaned = [t for t in (_clean_term(t) for t in terms) if t]
    if not cleaned:
        return ""
    return f"{prefix}({' OR '.join(cleaned)})"


def _join_parts(parts: Iterable[str]) -> str:
    return " ".join(p for p in parts if p)


def _paren_depth(text: str) -> int:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")" and depth > 0:
            depth -= 1
    return depth


def _close_open_groups(fragment: str) -> str:
    """Repair a hard-cut fragment into a balanced expression.

    Drops the partially cut trailing term, any dangling operator and an empty
    trailing group, then closes every group left open.
    """
    text = fragment.rstrip()
    if _paren_depth(text) > 0:
        last_open = text.rfind("(")
        last_sep = text.rfind(" OR ")
        if last_sep > last_open:
            text = text[:last_sep]
    text = _TRAILING_OPERATOR_RE.sub("", text)
    text = _EMPTY_GROUP_RE.sub("", text).rstrip()
    return text + ")" * _paren_depth(text)


def optimize_query_length(query: str) -> str:
    """Fit a query string into the provider's 500 character budget.

    Strings within budget are returned unchanged. Longer strings are cut at
    480 characters; if a closing parenthesis sits past position 400 the cut
    backs off to it, otherwise the hard cut is repaired so every group is
    closed.

    Args:
        query: Boolean query string

    Returns:
        Query of at most 500 characters with balanced parentheses
    """
    if len(query) <= MAX_QUERY_LENGTH:
        return query

    truncated = query[:TRUNCATE_AT]
    last_complete = truncated.rfind(")")
    if last_complete > MIN_GROUP_BOUNDARY:
        candidate = truncated[:last_complete + 1]
        if _paren_depth(candidate) == 0:
            result = candidate
        else:
            result = _close_open_groups(candidate)
    else:
        result = _close_open_groups(truncated)

    logger.debug("Query truncated | original=%d final=%d", len(query), len(result))
    return result


def _domains(values: Iterable[str]) -> str | None:
    joined = ",".join(values)
    return joined or None


def get_high_priority_keywords(preferences: Preferences) -> list[str]:
    """Top 6 industry terms plus top 5 of the first high-priority policy set."""
    keywords: list[str] = []
    industry = preferences.first_of(KeywordSetType.INDUSTRY)
    if industry:
        keywords.extend(industry.keywords[:6])
    for keyword_set in preferences.sets_of(KeywordSetType.POLICY):
        if keyword_set.priority == Priority.HIGH:
            keywords.extend(keyword_set.keywords[:5])
            break
    return keywords


def get_medium_priority_keywords(preferences: Preferences) -> list[str]:
    """Top 2 terms per region plus top 3 company terms."""
    keywords: list[str] = []
    for geo in preferences.sets_of(KeywordSetType.GEOGRAPHIC):
        keywords.extend(geo.keywords[:2])
    company = preferences.first_of(KeywordSetType.COMPANY)
    if company:
        keywords.extend(company.keywords[:3])
    return keywords


def get_exclude_terms(preferences: Preferences) -> list[str]:
    """Noise terms, plus sports leagues unless the user follows Sports."""
    terms = list(taxonomy.NOISE_TERMS)
    if "Sports" not in preferences.policy_topics:
        terms.extend(taxonomy.SPORTS_LEAGUE_TERMS)
    return terms


def build_primary_query(preferences: Preferences, now: datetime | None = None) -> ProviderQuery:
    """Build the primary query combining all of the user's interests.

    Always returns a query, even for an empty profile (the exclusion group is
    unconditional).
    """
    now = _utc_now(now)
    q = _join_parts([
        or_group(get_high_priority_keywords(preferences)),
        or_group(get_medium_priority_keywords(preferences), prefix="+"),
        or_group(get_exclude_terms(preferences), prefix="-"),
    ])
    return ProviderQuery(
        kind=QueryKind.PRIMARY,
        q=optimize_query_length(q),
        domains=_domains(preferences.domains),
        exclude_domains=_domains(preferences.exclude_domains),
        from_date=_days_ago(now, PRIMARY_WINDOW_DAYS),
        page_size=preferences.page_size,
        sort_by=preferences.sort_by,
        language=preferences.language,
    )


def build_topic_queries(preferences: Preferences, now: datetime | None = None) -> list[ProviderQuery]:
    """One query per policy topic, sharing the primary page budget."""
    now = _utc_now(now)
    policy_sets = preferences.sets_of(KeywordSetType.POLICY)
    page_size = preferences.page_size // max(len(policy_sets), 2)
    region_group = or_group(preferences.regions[:3], prefix="+")

    queries = []
    for keyword_set in policy_sets:
        q = _join_parts([or_group(keyword_set.keywords[:5]), region_group])
        queries.append(ProviderQuery(
            kind=QueryKind.TOPIC,
            label=keyword_set.topic,
            q=optimize_query_length(q),
            domains=_domains(preferences.domains),
            from_date=_days_ago(now, TOPIC_WINDOW_DAYS),
            page_size=page_size,
            sort_by=preferences.sort_by,
            language=preferences.language,
        ))
    return queries


def build_industry_query(preferences: Preferences, now: datetime | None = None) -> ProviderQuery:
    """Industry and company news with a regulatory angle."""
    now = _utc_now(now)
    parts = []
    industry = preferences.first_of(KeywordSetType.INDUSTRY)
    if preferences.industry and industry:
        parts.append(or_group(industry.keywords[:8]))
    company = preferences.first_of(KeywordSetType.COMPANY)
    if preferences.company and company:
        parts.append(or_group(company.keywords, prefix="+"))
    parts.append(or_group(taxonomy.REGULATORY_CONTEXT_TERMS, prefix="+"))

    domains = taxonomy.INDUSTRY_QUERY_DOMAINS.get(preferences.industry, preferences.domains)
    return ProviderQuery(
        kind=QueryKind.INDUSTRY,
        q=optimize_query_length(_join_parts(parts)),
        domains=_domains(domains),
        from_date=_days_ago(now, INDUSTRY_WINDOW_DAYS),
        page_size=math.floor(preferences.page_size * INDUSTRY_PAGE_SHARE),
        sort_by=preferences.sort_by,
        language=preferences.language,
    )


def build_investment_query(preferences: Preferences, now: datetime | None = None) -> ProviderQuery:
    """Market-moving news for the user's holdings, always by relevancy."""
    now = _utc_now(now)
    investment = preferences.first_of(KeywordSetType.INVESTMENT)
    q = _join_parts([
        or_group(investment.keywords) if investment else "",
        or_group(taxonomy.MARKET_IMPACT_TERMS, prefix="+"),
        or_group(taxonomy.TECHNICAL_ANALYSIS_TERMS, prefix="-"),
    ])
    return ProviderQuery(
        kind=QueryKind.INVESTMENT,
        q=optimize_query_length(q),
        domains=_domains(taxonomy.FINANCIAL_DOMAINS),
        from_date=_days_ago(now, INVESTMENT_WINDOW_DAYS),
        page_size=math.floor(preferences.page_size * INVESTMENT_PAGE_SHARE),
        sort_by=SortBy.RELEVANCY,
        language=preferences.language,
    )


def build_geographic_query(preferences: Preferences, now: datetime | None = None) -> ProviderQuery:
    """Policy news from the user's regions (top 3 terms per region)."""
    now = _utc_now(now)
    geo_terms: list[str] = []
    for geo in preferences.sets_of(KeywordSetType.GEOGRAPHIC):
        geo_terms.extend(geo.keywords[:3])

    q = ""
    if geo_terms:
        q = _join_parts([
            or_group(geo_terms),
            or_group(taxonomy.POLICY_CONTEXT_TERMS, prefix="+"),
        ])
    return ProviderQuery(
        kind=QueryKind.GEOGRAPHIC,
        q=optimize_query_length(q),
        domains=_domains(preferences.domains),
        from_date=_days_ago(now, GEOGRAPHIC_WINDOW_DAYS),
        page_size=math.floor(preferences.page_size * GEOGRAPHIC_PAGE_SHARE),
        sort_by=preferences.sort_by,
        language=preferences.language,
    )


def build_queries(preferences: Preferences, now: datetime | None = None) -> QueryPlan:
    """Build the primary query and every applicable variation.

    Variation order: topics, industry (if industry or company), investment
    (if the user holds investments), geographic (if regions are set).
    """
    now = _utc_now(now)
    variations: list[ProviderQuery] = list(build_topic_queries(preferences, now))
    if preferences.industry or preferences.company:
        variations.append(build_industry_query(preferences, now))
    if preferences.has_investments:
        variations.append(build_investment_query(preferences, now))
    if preferences.regions:
        variations.append(build_geographic_query(preferences, now))

    plan = QueryPlan(primary=build_primary_query(preferences, now), variations=tuple(variations))
    logger.debug(
        "Queries built | primary_len=%d variations=%d",
        len(plan.primary.q), len(plan.variations),
    )
    return plan


def generate_query_variations(preferences: Preferences, now: datetime | None = None) -> list[ProviderQuery]:
    """All queries for a profile as a flat list, primary first."""
    return build_queries(preferences, now).all_queries


def build_source_queries(preferences: Preferences, now: datetime | None = None) -> dict[str, ProviderQuery]:
    """Primary query keyed by provider name."""
    return {"newsapi": build_primary_query(preferences, now)}


def build_segment_query(
    segment: UserSegment | str,
    preferences: Preferences,
    now: datetime | None = None,
) -> ProviderQuery:
    """Tune the primary query for a per-user segment.

    power_user     page size x1.5 (cap 100), relevancy
    engaged_user   relevancy
    topic_focused  page size x0.8, newest first
    general_user   page size x0.6, newest first

    Unknown segment names leave the primary query untouched.
    """
    query = build_primary_query(preferences, now)
    try:
        segment = UserSegment(segment)
    except ValueError:
        logger.warning("Unknown user segment; using primary query | segment=%s", segment)
        return query

    if segment == UserSegment.POWER_USER:
        updates = {
            "page_size": min(math.floor(query.page_size * 1.5), SEGMENT_PAGE_SIZE_CAP),
            "sort_by": SortBy.RELEVANCY,
        }
    elif segment == UserSegment.ENGAGED_USER:
        updates = {"sort_by": SortBy.RELEVANCY}
    elif segment == UserSegment.TOPIC_FOCUSED:
        updates = {"page_size": math.floor(query.page_size * 0.8), "sort_by": SortBy.PUBLISHED_AT}
    else:
        updates = {"page_size": math.floor(query.page_size * 0.6), "sort_by": SortBy.PUBLISHED_AT}

    return query.model_copy(update=updates)
