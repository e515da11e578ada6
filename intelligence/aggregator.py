"""Preference aggregator: share one provider query across similar users.

Similarity between two Preferences:

    0.8 * jaccard(keyword terms) + 0.1 * [same sortBy] + 0.1 * [same pageSize]

Keyword terms are lower-cased and whitespace-collapsed before comparison.
Two users with no keywords at all compare as keyword-identical.

Grouping is a single greedy pass in input order: a profile joins the first
group whose representative (its first member) scores at or above the
threshold, otherwise it starts a new group. Each group's preferences are
merged into one shared Preferences object that the query builder turns into
a single query for the whole group.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from models.profile import UserProfile
from models.query import KeywordSet, Preferences, SortBy
from intelligence import taxonomy
from intelligence.analyzer import coerce_profile, extract_preferences

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.7
KEYWORD_WEIGHT = 0.8
SORT_WEIGHT = 0.1
PAGE_SIZE_WEIGHT = 0.1
MAX_DATA_REDUCTION = 90


def keyword_terms(preferences: Preferences) -> frozenset[str]:
    """Normalized set of every keyword across all keyword sets."""
    return frozenset(
        " ".join(term.lower().split())
        for keyword_set in preferences.keyword_sets
        for term in keyword_set.keywords
        if term.strip()
    )


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def preference_similarity(a: Preferences, b: Preferences) -> float:
    """Similarity score in [0, 1]; symmetric."""
    score = KEYWORD_WEIGHT * jaccard(keyword_terms(a), keyword_terms(b))
    if a.sort_by == b.sort_by:
        score += SORT_WEIGHT
    if a.page_size == b.page_size:
        score += PAGE_SIZE_WEIGHT
    return round(score, 6)


@dataclass
class PreferenceGroup:
    """Users that will share a single query."""

    key: str
    representative: Preferences
    member_ids: list[str] = field(default_factory=list)
    members: list[Preferences] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass
class AggregationResult:
    groups: list[PreferenceGroup]
    shared_queries: dict[str, Preferences]
    efficiency_metrics: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [{"key": g.key, "members": g.member_ids} for g in self.groups],
            "sharedQueries": {
                k: p.model_dump(mode="json", by_alias=True) for k, p in self.shared_queries.items()
            },
            "efficiencyMetrics": self.efficiency_metrics,
        }


def merge_preferences(members: list[Preferences]) -> Preferences:
    """Merge a group's preferences into one deterministic Preferences.

    Keyword sets are unioned by (type, topic, region) keeping the first
    occurrence's order and appending unseen keywords. The widest page size
    wins, relevancy wins if any member asks for it, and domains are unioned
    up to the provider limit.
    """
    if not members:
        raise ValueError("Cannot merge an empty group")
    first = members[0]
    if len(members) == 1:
        return first

    merged: dict[tuple, KeywordSet] = {}
    for prefs in members:
        for keyword_set in prefs.keyword_sets:
            ident = (keyword_set.type, keyword_set.topic, keyword_set.region)
            existing = merged.get(ident)
            if existing is None:
                merged[ident] = keyword_set
                continue
            keywords = tuple(dict.fromkeys(existing.keywords + keyword_set.keywords))
            merged[ident] = existing.model_copy(update={
                "keywords": keywords,
                "weight": max(existing.weight, keyword_set.weight),
            })

    def union(attr: str) -> tuple:
        return tuple(dict.fromkeys(v for p in members for v in getattr(p, attr)))

    wants_relevancy = any(p.sort_by == SortBy.RELEVANCY for p in members)
    return first.model_copy(update={
        "keyword_sets": tuple(merged.values()),
        "domains": union("domains")[:taxonomy.MAX_DOMAINS],
        "exclude_domains": union("exclude_domains"),
        "page_size": max(p.page_size for p in members),
        "sort_by": SortBy.RELEVANCY if wants_relevancy else SortBy.PUBLISHED_AT,
        "regions": union("regions"),
        "policy_topics": union("policy_topics"),
        "has_investments": any(p.has_investments for p in members),
    })


def calculate_metrics(total_users: int, unique_queries: int) -> dict[str, int]:
    """Efficiency of sharing queries across a batch.

    All values are zero for an empty batch.
    """
    if total_users <= 0:
        return {
            "totalUsers": 0,
            "uniqueQueries": 0,
            "sharedQueries": 0,
            "efficiencyGain": 0,
            "dataReduction": 0,
        }
    shared = total_users - unique_queries
    gain = round(100 * shared / total_users)
    return {
        "totalUsers": total_users,
        "uniqueQueries": unique_queries,
        "sharedQueries": shared,
        "efficiencyGain": gain,
        "dataReduction": min(MAX_DATA_REDUCTION, gain),
    }


def _profile_id(profile: UserProfile, index: int) -> str:
    return profile.id or f"user-{index}"


def aggregate(
    profiles: Iterable[UserProfile | dict[str, Any]],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    source: str = "newsapi",
) -> AggregationResult:
    """Group similar profiles and produce one shared Preferences per group.

    Args:
        profiles: Quiz profiles (models or raw dicts)
        threshold: Minimum similarity to join an existing group
        source: Provider name used in shared query keys

    Returns:
        AggregationResult with groups, ``shared_queries`` keyed
        ``"<source>:group-N"`` and efficiency metrics
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    groups: list[PreferenceGroup] = []
    total = 0
    for index, raw in enumerate(profiles):
        profile = coerce_profile(raw)
        prefs = extract_preferences(profile)
        total += 1

        for group in groups:
            if preference_similarity(group.representative, prefs) >= threshold:
                break
        else:
            group = PreferenceGroup(key=f"{source}:group-{len(groups) + 1}", representative=prefs)
            groups.append(group)

        group.member_ids.append(_profile_id(profile, index))
        group.members.append(prefs)

    shared_queries = {g.key: merge_preferences(g.members) for g in groups}
    metrics = calculate_metrics(total, len(groups))

    logger.info(
        "Preferences aggregated | users=%d groups=%d gain=%d%% threshold=%.2f",
        total, len(groups), metrics["efficiencyGain"], threshold,
    )
    return AggregationResult(groups=groups, shared_queries=shared_queries, efficiency_metrics=metrics)


def find_similar_users(
    profile: UserProfile | dict[str, Any],
    profiles: Iterable[UserProfile | dict[str, Any]],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[tuple[str, float]]:
    """Users whose preferences score at or above ``threshold`` against ``profile``.

    Returns (user id, score) pairs, most similar first. The profile itself is
    skipped when it appears in ``profiles`` with the same id.
    """
    target = coerce_profile(profile)
    target_prefs = extract_preferences(target)

    matches = []
    for index, raw in enumerate(profiles):
        other = coerce_profile(raw)
        if target.id and other.id == target.id:
            continue
        score = preference_similarity(target_prefs, extract_preferences(other))
        if score >= threshold:
            matches.append((_profile_id(other, index), score))
    return sorted(matches, key=lambda m: m[1], reverse=True)
