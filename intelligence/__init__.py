"""User intelligence: quiz profiles to targeted provider queries.

extract_preferences:
    Profile -> Preferences (keyword sets, page size, sort order, domains).

build_queries / build_segment_query:
    Preferences -> primary Boolean query plus variations, each within the
    provider's 500 character limit.

segment_users:
    Bucket a batch of profiles into cohorts (investors, professionals,
    academics, general).

aggregate:
    Group similar users so one query serves the whole group.

QueryCache:
    TTL cache keyed by normalized preference content.

Example:
    >>> from intelligence import extract_preferences, build_queries
    >>> plan = build_queries(extract_preferences({"topics": ["Immigration"]}))
    >>> plan.primary.q[:30]
    '(immigration policy OR border '
"""

from intelligence.analyzer import determine_user_segment, extract_preferences
from intelligence.query_builder import (
    build_queries,
    build_segment_query,
    build_source_queries,
    generate_query_variations,
    optimize_query_length,
)
from intelligence.segments import Cohort, get_user_cohort, segment_users
from intelligence.aggregator import aggregate, find_similar_users, preference_similarity
from intelligence.cache import MemoryCacheStore, QueryCache, cache_key, source_ttl

__all__ = [
    "extract_preferences",
    "determine_user_segment",
    "build_queries",
    "build_segment_query",
    "build_source_queries",
    "generate_query_variations",
    "optimize_query_length",
    "Cohort",
    "get_user_cohort",
    "segment_users",
    "aggregate",
    "find_similar_users",
    "preference_similarity",
    "QueryCache",
    "MemoryCacheStore",
    "cache_key",
    "source_ttl",
]
