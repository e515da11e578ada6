"""Tests for the query builder: Preferences -> provider queries."""

import pytest

from intelligence.analyzer import extract_preferences
from intelligence.query_builder import (
    MAX_QUERY_LENGTH,
    build_primary_query,
    build_queries,
    build_segment_query,
    build_source_queries,
    generate_query_variations,
    optimize_query_length,
    or_group,
)
from models.query import KeywordSet, KeywordSetType, Preferences, Priority, QueryKind, SortBy, UserSegment
from tests.conftest import NOW, POWER_PROFILE, TOPIC_PROFILE


def is_balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


SAMPLE_PROFILES = [
    {},
    POWER_PROFILE,
    TOPIC_PROFILE,
    {"topics": ["Space (orbital) policy"], "regions": ["Europe", "Africa", "Middle East", "Asia-Pacific"]},
    {
        "career": {"industry": "Finance", "company": "Tesla"},
        "topics": list(POWER_PROFILE["topics"]) + ["Immigration", "Defense", "Healthcare"],
        "regions": ["North America", "Europe", "Asia-Pacific", "Latin America", "Africa"],
        "investments": {"hasPortfolio": True, "details": "crypto, real estate, tech, energy"},
        "customStakes": [{"name": "Family farm (Iowa)"}],
        "timeAvailable": "30+ minutes",
    },
    {
        "career": {"industry": "Technology", "company": 'Acme "Labs'},
        "topics": ['AI "safety'],
        "customStakes": [{"name": 'My "home town'}],
    },
]


def long_keyword_preferences(count: int = 12) -> Preferences:
    """Preferences whose high-priority terms far exceed the length budget."""
    terms = tuple(f"extremely specific regulatory development number {i:02d} in region" for i in range(count))
    return Preferences(
        keyword_sets=(
            KeywordSet(type=KeywordSetType.INDUSTRY, priority=Priority.HIGH, weight=0.3, keywords=terms),
            KeywordSet(type=KeywordSetType.POLICY, topic="Custom", priority=Priority.HIGH, weight=0.25,
                       keywords=terms),
        ),
        industry="Custom",
        policy_topics=("Custom",),
    )


class TestOptimizeQueryLength:
    """Length budget and balanced parentheses."""

    def test_short_query_unchanged(self):
        """Queries within budget pass through untouched."""
        assert optimize_query_length("(a OR b) +(c)") == "(a OR b) +(c)"

    def test_long_single_group_is_closed(self):
        """A hard cut inside one group drops the partial term and closes it."""
        query = or_group(f"term number {i}" for i in range(80))
        result = optimize_query_length(query)

        assert len(query) > MAX_QUERY_LENGTH
        assert len(result) <= MAX_QUERY_LENGTH
        assert result.endswith(")")
        assert is_balanced(result)
        assert not result.rstrip(")").endswith(" OR")

    def test_cut_backs_off_to_group_boundary(self):
        """A closing parenthesis past position 400 becomes the cut point."""
        first = or_group(f"alpha {i}" for i in range(36))
        second = or_group((f"beta {i}" for i in range(40)), prefix="+")
        query = f"{first} {second}"
        assert 400 < len(first) < 480

        assert optimize_query_length(query) == first

    def test_empty_query(self):
        assert optimize_query_length("") == ""


class TestPrimaryQuery:
    """The primary query combining every interest."""

    def test_power_profile_shape(self):
        """High terms, then the required region/company group, then exclusions."""
        query = build_primary_query(extract_preferences(POWER_PROFILE), NOW)

        assert query.q.startswith("(artificial intelligence OR AI regulation OR data privacy")
        assert "+(United States OR Canada OR European Union OR Brexit OR Google OR Alphabet OR search regulation)" in query.q
        assert "-(sports OR entertainment" in query.q
        assert query.page_size == 50
        assert query.sort_by == SortBy.RELEVANCY
        assert query.from_date == "2024-05-03"
        assert query.exclude_domains == "clickhole.com,theonion.com,babylonbee.com"

    def test_empty_profile_still_has_query(self):
        """Only the exclusion group remains for an empty profile."""
        query = build_primary_query(extract_preferences({}), NOW)
        assert query.q.startswith("-(sports OR entertainment")
        assert "NFL" in query.q

    def test_sports_followers_keep_leagues(self):
        """League names are only excluded for users who don't follow Sports."""
        prefs = extract_preferences({"topics": ["Sports"]})
        assert "NFL" not in build_primary_query(prefs, NOW).q

    def test_long_keywords_truncated_and_balanced(self):
        """Over-long keyword sets are cut to a balanced query."""
        query = build_primary_query(long_keyword_preferences(), NOW)

        assert len(query.q) <= MAX_QUERY_LENGTH
        assert query.q.endswith(")")
        assert is_balanced(query.q)

    def test_stray_quotes_stripped(self):
        """An odd quote in user text never reaches the provider."""
        query = build_primary_query(extract_preferences({"topics": ['AI "safety']}), NOW)
        assert query.q.startswith("(AI safety) -(sports")
        assert '"' not in query.q

    def test_or_group_cleans_terms(self):
        assert or_group(['"climate', "(carbon) tax", '""'], prefix="+") == "+(climate OR carbon tax)"

    def test_to_params_uses_newsapi_names(self):
        """Wire parameters use NewsAPI's camelCase names."""
        params = build_primary_query(extract_preferences(POWER_PROFILE), NOW).to_params()
        assert params["pageSize"] == 50
        assert params["sortBy"] == "relevancy"
        assert params["from"] == "2024-05-03"
        assert params["language"] == "en"
        assert "excludeDomains" in params


class TestQueryVariations:
    """Topic, industry, investment and geographic variations."""

    def test_power_profile_plan(self):
        """Three topics, industry, investment and geographic, in that order."""
        plan = build_queries(extract_preferences(POWER_PROFILE), NOW)
        kinds = [q.kind for q in plan.variations]

        assert kinds == [
            QueryKind.TOPIC, QueryKind.TOPIC, QueryKind.TOPIC,
            QueryKind.INDUSTRY, QueryKind.INVESTMENT, QueryKind.GEOGRAPHIC,
        ]
        assert len(plan.all_queries) == 7
        assert plan.all_queries[0] == plan.primary

    def test_variation_page_sizes(self):
        """Variations share the primary page budget."""
        plan = build_queries(extract_preferences(POWER_PROFILE), NOW)
        sizes = {q.kind: q.page_size for q in plan.variations}

        assert sizes[QueryKind.TOPIC] == 16
        assert sizes[QueryKind.INDUSTRY] == 15
        assert sizes[QueryKind.INVESTMENT] == 12
        assert sizes[QueryKind.GEOGRAPHIC] == 10

    def test_variation_dates(self):
        plan = build_queries(extract_preferences(POWER_PROFILE), NOW)
        dates = {q.kind: q.from_date for q in plan.variations}

        assert dates[QueryKind.TOPIC] == "2024-05-07"
        assert dates[QueryKind.INDUSTRY] == "2024-05-05"
        assert dates[QueryKind.INVESTMENT] == "2024-05-07"
        assert dates[QueryKind.GEOGRAPHIC] == "2024-05-05"

    def test_topic_queries_labelled_and_scoped_to_regions(self):
        plan = build_queries(extract_preferences(POWER_PROFILE), NOW)
        topic = plan.variations[0]

        assert topic.label == "Technology Regulation"
        assert topic.q == (
            "(tech regulation OR data privacy OR antitrust OR platform liability OR AI governance) "
            "+(North America OR Europe)"
        )

    def test_investment_query_uses_financial_domains(self):
        """Investment news is always by relevancy from financial outlets."""
        prefs = extract_preferences({**TOPIC_PROFILE, "investments": {"hasPortfolio": True, "details": "crypto"}})
        query = next(q for q in build_queries(prefs, NOW).variations if q.kind == QueryKind.INVESTMENT)

        assert query.sort_by == SortBy.RELEVANCY
        assert query.domains.startswith("bloomberg.com,reuters.com")
        assert "-(technical analysis" in query.q

    def test_industry_query_uses_industry_domains(self):
        prefs = extract_preferences(POWER_PROFILE)
        query = next(q for q in build_queries(prefs, NOW).variations if q.kind == QueryKind.INDUSTRY)
        assert "wired.com" in query.domains
        assert "+(Google OR Alphabet OR search regulation OR antitrust)" in query.q

    def test_empty_profile_has_no_variations(self):
        assert build_queries(extract_preferences({}), NOW).variations == ()

    def test_flat_list_primary_first(self):
        prefs = extract_preferences(TOPIC_PROFILE)
        queries = generate_query_variations(prefs, NOW)
        assert queries[0].kind == QueryKind.PRIMARY
        assert [q.label for q in queries[1:]] == ["Immigration", "Defense"]

    def test_source_queries_keyed_by_provider(self):
        prefs = extract_preferences(TOPIC_PROFILE)
        assert build_source_queries(prefs, NOW) == {"newsapi": build_primary_query(prefs, NOW)}

    def test_builder_is_deterministic(self):
        prefs = extract_preferences(POWER_PROFILE)
        assert build_queries(prefs, NOW) == build_queries(prefs, NOW)

    @pytest.mark.parametrize("profile", SAMPLE_PROFILES)
    def test_every_query_within_budget_and_balanced(self, profile):
        """No query exceeds 500 characters or leaves a group open."""
        for query in generate_query_variations(extract_preferences(profile), NOW):
            assert len(query.q) <= MAX_QUERY_LENGTH
            assert is_balanced(query.q)
            assert query.q.count('"') % 2 == 0


class TestSegmentQuery:
    """Primary query tuned per user segment."""

    def test_power_user_scales_up(self):
        prefs = extract_preferences({**POWER_PROFILE, "timeAvailable": "20-30 minutes"})
        query = build_segment_query(UserSegment.POWER_USER, prefs, NOW)
        assert query.page_size == 75
        assert query.sort_by == SortBy.RELEVANCY

    def test_power_user_capped_at_100(self):
        prefs = extract_preferences({"timeAvailable": "30+ minutes"})
        assert build_segment_query("power_user", prefs, NOW).page_size == 100

    def test_engaged_user_keeps_size(self):
        prefs = extract_preferences({})
        query = build_segment_query(UserSegment.ENGAGED_USER, prefs, NOW)
        assert query.page_size == 35
        assert query.sort_by == SortBy.RELEVANCY

    def test_topic_focused_and_general_scale_down(self):
        prefs = extract_preferences({})
        assert build_segment_query(UserSegment.TOPIC_FOCUSED, prefs, NOW).page_size == 28
        assert build_segment_query(UserSegment.GENERAL_USER, prefs, NOW).page_size == 21

    def test_unknown_segment_returns_primary(self):
        """An unrecognized segment name leaves the primary query untouched."""
        prefs = extract_preferences(POWER_PROFILE)
        assert build_segment_query("vip", prefs, NOW) == build_primary_query(prefs, NOW)
