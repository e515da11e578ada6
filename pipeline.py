"""Briefing pipeline orchestration.

Pipeline Flow (per user):
    1. ANALYZE: quiz profile -> Preferences (pure)
    2. PLAN: Preferences -> primary query + variations (pure)
    3. FETCH: run the queries one at a time against the provider, with a
       courtesy delay between requests and bounded retries on each
    4. STANDARDIZE: transform, validate and de-duplicate articles
    5. FALLBACK: if nothing could be fetched because the provider failed,
       return a single placeholder article flagged ``isFallback``

Batches run users concurrently under a semaphore (MAX_WORKERS). Results for
identical preferences are cached, and concurrent duplicates fill once.

Planning-only entry points (no provider calls):
    process_single_user        preferences, query plan and efficiency info
    process_user_intelligence  shared queries for a batch via aggregation

Neither planning entry point raises: on unexpected errors they return a
minimal fallback result carrying an ``error`` field.
"""

import asyncio
import logging
import re
import time
import uuid
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

from config import Config
from models.article import StandardArticle
from models.briefing import Briefing
from models.profile import UserProfile
from models.query import Preferences, ProviderQuery, SortBy, UserSegment
from intelligence.aggregator import aggregate, calculate_metrics
from intelligence.analyzer import coerce_profile, extract_preferences
from intelligence.cache import QueryCache, cache_key, source_ttl
from intelligence.query_builder import (
    build_queries,
    build_segment_query,
    build_source_queries,
)
from intelligence.segments import Cohort, get_user_cohort, segment_users
from observability.logging import clear_context, set_run_context, set_user_context
from observability.tracing import BatchTracer, trace_operation
from sources.base import ArticleProvider
from sources.errors import BriefingError, ConfigurationError, RetriesExhaustedError
from sources.retry import with_retry
from sources.schema import fallback_articles, validate_article

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_WORD_RE = re.compile(r"\w+")
_BOOLEAN_RE = re.compile(r"(\sAND\s|\sOR\s|\sNOT\s|[+\-])")
_OPERATOR_RE = re.compile(r"(\sAND\s|\sOR\s|\sNOT\s)")

# Returned by the planning entry points when processing fails
FALLBACK_BATCH_QUERY = ProviderQuery(
    q="politics OR policy OR regulation OR government",
    page_size=20,
    sort_by=SortBy.PUBLISHED_AT,
    language="en",
)
FALLBACK_SINGLE_QUERY = ProviderQuery(
    q="news OR politics",
    page_size=10,
    sort_by=SortBy.PUBLISHED_AT,
    language="en",
)


@dataclass
class FetchStats:
    """Request accounting for one user's fetch sequence.

    Returned alongside the articles instead of being kept on the provider,
    so providers stay stateless and concurrent users never share counters.
    """

    queries_planned: int = 0    # Queries in the plan
    requests: int = 0           # Queries sent (after retries)
    failed_queries: int = 0     # Queries that ended in an error
    articles_raw: int = 0       # Records returned by the provider
    articles_kept: int = 0      # Valid, unique articles
    articles_dropped: int = 0   # Removed, invalid or duplicate records
    fallback: bool = False      # Placeholder articles were returned
    cached: bool = False        # Served from the cache
    errors: list[str] = field(default_factory=list)
    duration: float = 0.0       # Seconds

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


def _dump_query(query: ProviderQuery) -> dict[str, Any]:
    return query.model_dump(mode="json", by_alias=True, exclude_none=True)


def _dump_queries(queries: dict[str, ProviderQuery]) -> dict[str, dict[str, Any]]:
    return {source: _dump_query(q) for source, q in queries.items()}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _preferences_for(profile: UserProfile | dict[str, Any], config: Config) -> Preferences:
    """Profile preferences with the configured article language applied."""
    preferences = extract_preferences(profile)
    if preferences.language != config.language:
        preferences = preferences.model_copy(update={"language": config.language})
    return preferences


# === Efficiency reporting ===


def calculate_efficiency_metrics(total_users: int, source_queries: dict[str, Any]) -> dict[str, int]:
    """Metrics for a batch that resolved to ``source_queries``."""
    return calculate_metrics(total_users, len(source_queries))


def generate_query_breakdown(source_queries: dict[str, ProviderQuery]) -> dict[str, dict[str, Any]]:
    """Shape of each generated query, for inspection and dashboards."""
    breakdown = {}
    for key, query in source_queries.items():
        breakdown[key] = {
            "queryLength": len(query.q),
            "keywordCount": len(_WORD_RE.findall(query.q)),
            "hasBoolean": bool(_BOOLEAN_RE.search(query.q)),
            "hasDomains": bool(query.domains),
            "hasDateRange": bool(query.from_date or query.to_date),
            "pageSize": query.page_size,
            "sortBy": query.sort_by.value,
        }
    return breakdown


def calculate_query_complexity(queries: Iterable[ProviderQuery]) -> str:
    """Rough complexity class of a set of queries: low, medium or high.

    Each query scores 1-3 for length (>50, >100 chars), +2 for Boolean
    operators, +1 for a domain filter and +1 for a date range.
    """
    score = 0
    for query in queries:
        if not query.q:
            continue
        length = len(query.q)
        score += 3 if length > 100 else 2 if length > 50 else 1
        score += 2 if _OPERATOR_RE.search(query.q) else 0
        score += 1 if query.domains else 0
        score += 1 if query.from_date or query.to_date else 0

    if score > 8:
        return "high"
    if score > 4:
        return "medium"
    return "low"


def estimate_article_count(preferences: Preferences) -> int:
    """Expected article volume for the primary query.

    Starts from the page size; many keywords narrow results (x0.7), few
    widen them (x1.3), and a domain filter narrows them (x0.8).
    """
    count = float(preferences.page_size or 50)
    keywords = preferences.total_keywords
    if keywords > 20:
        count *= 0.7
    if keywords < 5:
        count *= 1.3
    if preferences.domains:
        count *= 0.8
    return round(count)


def layer_stats(cache: QueryCache | None = None) -> dict[str, Any]:
    """Capabilities and cache state of the intelligence layer."""
    return {
        "capabilities": [
            "profile_analysis",
            "boolean_query_generation",
            "segment_tuning",
            "cohort_segmentation",
            "preference_aggregation",
            "query_caching",
        ],
        "providers": ["newsapi"],
        "userSegments": [s.value for s in UserSegment],
        "cohorts": [c.value for c in Cohort],
        "cacheStats": cache.get_stats() if cache is not None else None,
        "timestamp": _utc_now(),
    }


# === Planning entry points ===


def process_single_user(profile: UserProfile | dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Plan queries for one user without calling any provider.

    Returns:
        Dict with ``queries`` (per provider), ``queryVariations``,
        ``segment`` (tuning class), ``cohort``, ``preferences``,
        ``optimizedQuery`` (segment-tuned primary) and ``efficiency``.
        On failure, a fallback query plus an ``error`` field.
    """
    try:
        profile = coerce_profile(profile)
        preferences = extract_preferences(profile)
        plan = build_queries(preferences, now)
        source_queries = build_source_queries(preferences, now)
        segment = preferences.user_segment

        logger.info(
            "Single user processed | user=%s segment=%s variations=%d",
            profile.display_name, segment.value, len(plan.variations),
        )
        return {
            "queries": _dump_queries(source_queries),
            "queryVariations": [_dump_query(q) for q in plan.all_queries],
            "segment": segment.value,
            "cohort": get_user_cohort(profile).value,
            "preferences": preferences.model_dump(mode="json", by_alias=True),
            "optimizedQuery": _dump_query(build_segment_query(segment, preferences, now)),
            "efficiency": {
                "keywordSets": len(preferences.keyword_sets),
                "totalKeywords": preferences.total_keywords,
                "queryComplexity": calculate_query_complexity(source_queries.values()),
                "estimatedArticles": estimate_article_count(preferences),
            },
            "timestamp": _utc_now(),
        }
    except Exception as e:
        logger.error("Single user processing failed | error=%s", e, exc_info=True)
        return {
            "queries": {"newsapi": _dump_query(FALLBACK_SINGLE_QUERY)},
            "segment": UserSegment.GENERAL_USER.value,
            "preferences": {},
            "error": str(e),
        }


def process_user_intelligence(
    profiles: list[UserProfile | dict[str, Any]],
    cache: QueryCache | None = None,
    threshold: float = 0.7,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Plan shared queries for a batch of users.

    Similar users are aggregated into groups; each group gets one primary
    query, looked up in ``cache`` first and stored there with the provider's
    TTL otherwise.

    Returns:
        Dict with ``sourceQueries`` (keyed by group), ``userSegments``
        (cohorts), ``aggregation`` (group membership), ``efficiencyMetrics``,
        ``cacheStats`` and ``queryBreakdown``. On failure, a single fallback
        query plus an ``error`` field.
    """
    cache = cache if cache is not None else QueryCache()
    try:
        logger.info("Batch planning started | users=%d", len(profiles))
        cohorts = segment_users(profiles)
        aggregation = aggregate(profiles, threshold=threshold)

        source_queries: dict[str, ProviderQuery] = {}
        for group_key, preferences in aggregation.shared_queries.items():
            source = group_key.split(":", 1)[0]
            key = cache_key(source, preferences)
            cached = cache.get(key)
            if cached is not None:
                source_queries[group_key] = cached
                logger.debug("Cached query reused | group=%s", group_key)
                continue

            query = build_source_queries(preferences, now)[source]
            cache.set(key, query, source_ttl(source))
            source_queries[group_key] = query

        metrics = calculate_efficiency_metrics(len(profiles), source_queries)
        logger.info(
            "Batch planning done | users=%d queries=%d gain=%d%%",
            metrics["totalUsers"], metrics["uniqueQueries"], metrics["efficiencyGain"],
        )
        return {
            "sourceQueries": _dump_queries(source_queries),
            "userSegments": cohorts.to_dict(),
            "aggregation": [{"key": g.key, "members": g.member_ids} for g in aggregation.groups],
            "efficiencyMetrics": metrics,
            "cacheStats": cache.get_stats(),
            "queryBreakdown": generate_query_breakdown(source_queries),
            "timestamp": _utc_now(),
        }
    except Exception as e:
        logger.error("Batch planning failed | users=%d error=%s", len(profiles), e, exc_info=True)
        return {
            "sourceQueries": {"newsapi": _dump_query(FALLBACK_BATCH_QUERY)},
            "userSegments": {"segments": {Cohort.GENERAL.value: [_safe_id(p) for p in profiles]}},
            "efficiencyMetrics": {
                "totalUsers": len(profiles),
                "uniqueQueries": 1,
                "sharedQueries": 0,
                "efficiencyGain": 0,
                "dataReduction": 0,
            },
            "cacheStats": {"totalEntries": 0, "hitRate": 0},
            "error": str(e),
        }


def _safe_id(profile: Any) -> str:
    if isinstance(profile, UserProfile):
        return profile.id
    if isinstance(profile, dict):
        return str(profile.get("id", ""))
    return ""


# === Fetching ===


async def fetch_articles_for_user(
    profile: UserProfile | dict[str, Any],
    provider: ArticleProvider,
    config: Config | None = None,
    sleep: Sleep = asyncio.sleep,
    now: datetime | None = None,
) -> tuple[list[StandardArticle], FetchStats]:
    """Fetch and standardize articles for one user.

    Queries run strictly one after another, ``config.request_delay`` apart.
    A non-retryable query error skips that query; a configuration error or
    exhausted retries stops the sequence, since the provider is unusable.
    When the provider failed and nothing was collected, the result is a
    single fallback article.

    Returns:
        (articles, stats)
    """
    config = config or Config()
    start = time.perf_counter()
    stats = FetchStats()

    preferences = _preferences_for(profile, config)
    queries = [q for q in build_queries(preferences, now).all_queries if q.q]
    stats.queries_planned = len(queries)
    policy = config.retry_policy

    articles: dict[str, StandardArticle] = {}
    for index, query in enumerate(queries):
        if len(articles) >= config.max_articles_per_user:
            break
        if index > 0 and config.request_delay > 0:
            await sleep(config.request_delay)

        try:
            raw_records = await with_retry(
                lambda: provider.fetch(query), policy, source=provider.name, sleep=sleep,
            )
        except (ConfigurationError, RetriesExhaustedError) as e:
            stats.failed_queries += 1
            stats.errors.append(str(e))
            logger.error("Provider unavailable | source=%s kind=%s error=%s", provider.name, query.kind.value, e)
            break
        except BriefingError as e:
            stats.failed_queries += 1
            stats.errors.append(str(e))
            logger.warning("Query failed | source=%s kind=%s error=%s", provider.name, query.kind.value, e)
            continue
        stats.requests += 1
        stats.articles_raw += len(raw_records)

        for raw in raw_records:
            try:
                article = provider.transform(raw, preferences.language)
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug("Transform failed | source=%s error=%s", provider.name, e)
                article = None
            if article is None or article.id in articles or validate_article(article):
                stats.articles_dropped += 1
                continue
            articles[article.id] = article

    result = list(articles.values())[:config.max_articles_per_user]
    if not result and stats.errors:
        result = fallback_articles(provider.name, stats.errors)
        stats.fallback = True

    stats.articles_kept = 0 if stats.fallback else len(result)
    stats.duration = time.perf_counter() - start
    logger.info(
        "User fetch done | queries=%d/%d articles=%d dropped=%d fallback=%s duration=%.1fs",
        stats.requests, stats.queries_planned, stats.articles_kept,
        stats.articles_dropped, stats.fallback, stats.duration,
    )
    return result, stats


def _briefing_summary(articles: list[StandardArticle], segment: UserSegment) -> str:
    if not articles:
        return "No matching articles in this window."
    if articles[0].is_fallback:
        return articles[0].summary
    counts = Counter(a.category.value for a in articles)
    top = ", ".join(f"{name} ({n})" for name, n in counts.most_common(3))
    return f"{len(articles)} articles for {segment.value}: {top}"


async def fetch_briefing(
    profile: UserProfile | dict[str, Any],
    provider: ArticleProvider,
    cache: QueryCache,
    config: Config | None = None,
    sleep: Sleep = asyncio.sleep,
    now: datetime | None = None,
) -> Briefing:
    """Build one user's briefing, reusing cached articles for identical preferences.

    Fallback results are never cached.
    """
    config = config or Config()
    profile = coerce_profile(profile)
    set_user_context(profile.id)
    preferences = _preferences_for(profile, config)
    stats_holder: list[FetchStats] = []

    async def compute() -> list[StandardArticle]:
        articles, stats = await fetch_articles_for_user(profile, provider, config, sleep=sleep, now=now)
        stats_holder.append(stats)
        return articles

    with trace_operation("fetch_briefing", {"user_id": profile.id}) as attrs:
        key = cache_key(f"{provider.name}:articles", preferences)
        articles = await cache.get_or_compute(
            key,
            compute,
            ttl_seconds=config.cache_ttl,
            should_cache=lambda value: bool(value) and not value[0].is_fallback,
        )
        stats = stats_holder[0] if stats_holder else FetchStats(cached=True, articles_kept=len(articles))
        attrs.update({"articles": len(articles), "cached": stats.cached, "fallback": stats.fallback})

    is_fallback = any(a.is_fallback for a in articles)
    return Briefing(
        user_id=profile.id,
        user_segment=preferences.user_segment,
        cohort=get_user_cohort(profile).value,
        articles=articles,
        summary=_briefing_summary(articles, preferences.user_segment),
        is_fallback=is_fallback,
        query_count=stats.requests if not stats.cached else 0,
    )


def _fallback_briefing(profile: Any, error: BaseException, source: str) -> Briefing:
    articles = fallback_articles(source, [str(error)])
    return Briefing(
        user_id=_safe_id(profile),
        user_segment=UserSegment.GENERAL_USER,
        articles=articles,
        summary=articles[0].summary,
        is_fallback=True,
    )


async def fetch_briefings(
    profiles: list[UserProfile | dict[str, Any]],
    provider: ArticleProvider,
    cache: QueryCache | None = None,
    config: Config | None = None,
    sleep: Sleep = asyncio.sleep,
    now: datetime | None = None,
) -> list[Briefing]:
    """Build briefings for a batch of users, ``config.max_workers`` at a time.

    One user's failure never affects the others: any unexpected error is
    turned into a fallback briefing for that user. Output order matches
    input order.
    """
    config = config or Config()
    cache = cache if cache is not None else QueryCache(default_ttl=config.cache_ttl)
    semaphore = asyncio.Semaphore(config.max_workers)
    run_id = uuid.uuid4().hex[:8]
    set_run_context(run_id)
    tracer = BatchTracer()

    async def process(profile: UserProfile | dict[str, Any]) -> Briefing:
        async with semaphore:
            return await fetch_briefing(profile, provider, cache, config, sleep=sleep, now=now)

    logger.info("Batch fetch started | users=%d workers=%d", len(profiles), config.max_workers)
    with tracer.trace_run(run_id, users=len(profiles)):
        results = await asyncio.gather(*(process(p) for p in profiles), return_exceptions=True)

        briefings: list[Briefing] = []
        for profile, result in zip(profiles, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error("Briefing failed | user=%s error=%s", _safe_id(profile), result, exc_info=result)
                result = _fallback_briefing(profile, result, provider.name)
            tracer.record_briefing(len(result.articles), result.is_fallback)
            briefings.append(result)
        tracer.record_cache(cache.get_stats())

    summary = tracer.get_summary()
    logger.info(
        "Batch fetch done | users=%d articles=%d fallbacks=%d duration=%.1fs",
        len(briefings), summary.get("articles", 0), summary.get("fallbacks", 0),
        summary.get("duration_seconds", 0.0),
    )
    clear_context()
    return briefings
