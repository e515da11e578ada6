"""Tests for similarity grouping and shared queries."""

import pytest

from intelligence.aggregator import (
    aggregate,
    calculate_metrics,
    find_similar_users,
    jaccard,
    merge_preferences,
    preference_similarity,
)
from intelligence.analyzer import extract_preferences
from models.query import KeywordSetType, SortBy
from tests.conftest import POWER_PROFILE, TOPIC_PROFILE


def clones(profile: dict, *ids: str) -> list[dict]:
    return [{**profile, "id": user_id} for user_id in ids]


class TestSimilarity:
    """Preference similarity scoring."""

    def test_identical_preferences_score_one(self):
        prefs = extract_preferences(POWER_PROFILE)
        assert preference_similarity(prefs, prefs) == 1.0

    def test_unrelated_preferences_score_zero(self):
        """No shared terms, different sort order and page size."""
        a = extract_preferences(POWER_PROFILE)
        b = extract_preferences(TOPIC_PROFILE)
        assert preference_similarity(a, b) == 0.0

    def test_symmetric(self):
        a = extract_preferences(POWER_PROFILE)
        b = extract_preferences({"topics": ["Technology Regulation"], "expertise": "Expert"})
        assert preference_similarity(a, b) == preference_similarity(b, a)

    def test_two_empty_profiles_are_identical(self):
        """Users with no keywords compare as keyword-identical."""
        assert jaccard(frozenset(), frozenset()) == 1.0
        assert preference_similarity(extract_preferences({}), extract_preferences({})) == 1.0

    def test_terms_are_normalized(self):
        assert jaccard(frozenset({"ai"}), frozenset({"ai", "chips"})) == 0.5


class TestAggregate:
    """Greedy grouping and efficiency metrics."""

    def test_identical_profiles_share_one_query(self):
        result = aggregate(clones(TOPIC_PROFILE, "a", "b", "c"))

        assert len(result.groups) == 1
        assert result.groups[0].member_ids == ["a", "b", "c"]
        assert list(result.shared_queries) == ["newsapi:group-1"]
        assert result.efficiency_metrics == {
            "totalUsers": 3,
            "uniqueQueries": 1,
            "sharedQueries": 2,
            "efficiencyGain": 67,
            "dataReduction": 67,
        }

    def test_different_profiles_get_separate_queries(self):
        result = aggregate([POWER_PROFILE, TOPIC_PROFILE])

        assert [g.member_ids for g in result.groups] == [["u-power"], ["u-topic"]]
        assert list(result.shared_queries) == ["newsapi:group-1", "newsapi:group-2"]
        assert result.efficiency_metrics["efficiencyGain"] == 0

    def test_empty_batch(self):
        result = aggregate([])
        assert result.groups == []
        assert result.shared_queries == {}
        assert set(result.efficiency_metrics.values()) == {0}

    def test_missing_ids_are_positional(self):
        result = aggregate([{}, {}])
        assert result.groups[0].member_ids == ["user-0", "user-1"]

    def test_source_names_group_keys(self):
        result = aggregate([TOPIC_PROFILE], source="gnews")
        assert list(result.shared_queries) == ["gnews:group-1"]

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(ValueError):
            aggregate([TOPIC_PROFILE], threshold=threshold)

    def test_zero_threshold_groups_everyone(self):
        result = aggregate([POWER_PROFILE, TOPIC_PROFILE, {}], threshold=0.0)
        assert len(result.groups) == 1

    def test_lower_threshold_merges_close_profiles(self):
        """A shared topic with one extra region groups below 0.7 but not at it."""
        a = {"id": "a", "topics": ["Immigration"]}
        b = {"id": "b", "topics": ["Immigration"], "regions": ["Europe"]}

        assert len(aggregate([a, b]).groups) == 2
        merged = aggregate([a, b], threshold=0.6).shared_queries["newsapi:group-1"]
        assert merged.regions == ("Europe",)
        assert merged.first_of(KeywordSetType.GEOGRAPHIC) is not None

    def test_to_dict_is_camel_case(self):
        data = aggregate(clones(TOPIC_PROFILE, "a", "b")).to_dict()
        assert data["groups"] == [{"key": "newsapi:group-1", "members": ["a", "b"]}]
        assert "pageSize" in data["sharedQueries"]["newsapi:group-1"]


class TestMergePreferences:

    def test_single_member_unchanged(self):
        prefs = extract_preferences(TOPIC_PROFILE)
        assert merge_preferences([prefs]) is prefs

    def test_empty_group_rejected(self):
        with pytest.raises(ValueError):
            merge_preferences([])

    def test_widest_page_and_relevancy_win(self):
        a = extract_preferences({"timeAvailable": "5-10 minutes"})
        b = extract_preferences({"timeAvailable": "30+ minutes", "expertise": "Expert"})
        merged = merge_preferences([a, b])
        assert merged.page_size == 75
        assert merged.sort_by == SortBy.RELEVANCY

    def test_keywords_unioned_per_set(self):
        a = extract_preferences({"career": {"company": "Google"}})
        b = extract_preferences({"career": {"company": "Microsoft"}})
        merged = merge_preferences([a, b])
        company = merged.first_of(KeywordSetType.COMPANY)
        assert company.keywords == (
            "Google", "Alphabet", "search regulation", "antitrust", "Microsoft", "Azure", "cloud computing",
        )


class TestMetrics:

    def test_data_reduction_capped(self):
        metrics = calculate_metrics(20, 1)
        assert metrics["efficiencyGain"] == 95
        assert metrics["dataReduction"] == 90

    def test_no_sharing(self):
        assert calculate_metrics(4, 4)["efficiencyGain"] == 0


class TestFindSimilarUsers:

    def test_finds_clones_and_skips_self(self):
        batch = clones(TOPIC_PROFILE, "u-topic", "x", "y") + [POWER_PROFILE]
        matches = find_similar_users(TOPIC_PROFILE, batch)
        assert matches == [("x", 1.0), ("y", 1.0)]

    def test_no_matches(self):
        assert find_similar_users(POWER_PROFILE, [TOPIC_PROFILE]) == []
