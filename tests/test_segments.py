"""Tests for multi-user cohort segmentation."""

import pytest

from intelligence.segments import (
    Cohort,
    get_cohort_characteristics,
    get_user_cohort,
    identify_high_value_cohorts,
    segment_users,
)
from tests.conftest import POWER_PROFILE, TOPIC_PROFILE


class TestGetUserCohort:
    """Cohort rules, first match wins."""

    @pytest.mark.parametrize("profile,cohort", [
        (POWER_PROFILE, Cohort.INVESTORS),
        ({"profession": "Professor of Economics"}, Cohort.ACADEMICS),
        ({"career": {"industry": "Education"}}, Cohort.ACADEMICS),
        ({"career": {"role": "PhD candidate"}}, Cohort.ACADEMICS),
        ({"career": {"industry": "Energy"}}, Cohort.PROFESSIONALS),
        ({"career": {"company": "Acme Corp"}}, Cohort.PROFESSIONALS),
        (TOPIC_PROFILE, Cohort.GENERAL),
        ({}, Cohort.GENERAL),
    ])
    def test_rules(self, profile, cohort):
        assert get_user_cohort(profile) == cohort

    def test_portfolio_outranks_academic(self):
        """An invested professor is an investor."""
        profile = {"profession": "Professor", "investments": {"hasPortfolio": True}}
        assert get_user_cohort(profile) == Cohort.INVESTORS


class TestSegmentUsers:
    """Batch bucketing."""

    def test_all_cohorts_present(self):
        """Every cohort key exists even when empty."""
        result = segment_users([POWER_PROFILE])
        assert set(result.segments) == set(Cohort)
        assert result.sizes() == {"investors": 1, "professionals": 0, "academics": 0, "general": 0}

    def test_empty_batch(self):
        assert all(size == 0 for size in segment_users([]).sizes().values())

    def test_idempotent(self):
        """Segmenting the same batch twice gives the same buckets."""
        batch = [POWER_PROFILE, TOPIC_PROFILE, {"id": "p", "career": {"industry": "Finance"}}]
        assert segment_users(batch).to_dict() == segment_users(batch).to_dict()

    def test_input_order_preserved_within_bucket(self):
        batch = [{"id": "b"}, {"id": "a"}, {"id": "c"}]
        assert segment_users(batch).to_dict()["segments"]["general"] == ["b", "a", "c"]

    def test_characteristics_cover_every_cohort(self):
        result = segment_users([])
        assert set(result.characteristics) == set(Cohort)


class TestCohortHelpers:

    def test_characteristics_by_name(self):
        info = get_cohort_characteristics("investors")
        assert info.update_frequency == "hourly"
        assert "bloomberg.com" in info.preferred_sources

    def test_unknown_cohort_raises(self):
        with pytest.raises(ValueError):
            get_cohort_characteristics("aliens")

    def test_high_value_cohorts_largest_first(self):
        """Only non-empty investor/professional cohorts, by size."""
        batch = [
            {"career": {"industry": "Energy"}},
            {"career": {"company": "Tesla"}},
            POWER_PROFILE,
            TOPIC_PROFILE,
        ]
        assert identify_high_value_cohorts(batch) == [Cohort.PROFESSIONALS, Cohort.INVESTORS]

    def test_no_high_value_cohorts(self):
        assert identify_high_value_cohorts([TOPIC_PROFILE]) == []
