"""Tests for percentile → range classification across label sets."""

import pytest

from services.errors import InvalidTestType
from services.scoring.classification import (
    LABEL_SETS,
    RANGE_LOWER_BOUNDS,
    bucket_index,
    classify_range,
    get_label_set,
)


class TestNpsychRanges:
    @pytest.mark.parametrize("percentile,expected", [
        (99, "Exceptionally High"),
        (98, "Exceptionally High"),
        (97, "Above Average"),
        (91, "Above Average"),
        (90, "High Average"),
        (75, "High Average"),
        (74, "Average"),
        (50, "Average"),
        (25, "Average"),
        (24, "Low Average"),
        (9, "Low Average"),
        (8, "Below Average"),
        (2, "Below Average"),
        (1, "Exceptionally Low"),
        (0, "Exceptionally Low"),
    ])
    def test_bucket_boundaries(self, percentile, expected):
        assert classify_range(percentile) == expected

    def test_none_percentile(self):
        assert classify_range(None) is None

    @pytest.mark.parametrize("bad", [-1, 101])
    def test_out_of_range_raises(self, bad):
        with pytest.raises(ValueError):
            classify_range(bad)


class TestLabelSets:
    def test_every_set_has_one_label_per_bucket(self):
        for labels in LABEL_SETS.values():
            assert len(labels) == len(RANGE_LOWER_BOUNDS)

    def test_rating_scale_top_buckets(self):
        assert classify_range(98, "rating_scale") == "Clinically Significant"
        assert classify_range(93, "rating_scale") == "At-Risk"
        assert classify_range(50, "rating_scale") == "Average"

    def test_validity_indicator(self):
        assert classify_range(60, "validity_indicator") == "WNL Score"
        assert classify_range(99, "validity_indicator") == "WNL Score"
        assert classify_range(10, "validity_indicator") == "Low Average Score"
        assert classify_range(5, "validity_indicator") == "Below Average Score"
        assert classify_range(1, "validity_indicator") == "Exceptionally Low Score"

    def test_performance_validity_aliases_validity_indicator(self):
        assert get_label_set("performance_validity") == get_label_set("validity_indicator")

    def test_symptom_validity_flags_high_end(self):
        assert classify_range(99, "symptom_validity") == "Clinically Significant"
        assert classify_range(92, "symptom_validity") == "At-Risk"
        assert classify_range(3, "symptom_validity") == "WNL Score"

    def test_unknown_test_type(self):
        with pytest.raises(InvalidTestType):
            classify_range(50, "questionnaire")

    def test_explicit_labels_override(self):
        labels = ("a", "b", "c", "d", "e", "f", "g")
        assert classify_range(50, labels=labels) == "d"
        assert classify_range(1, "questionnaire", labels=labels) == "g"

    def test_explicit_labels_wrong_length(self):
        with pytest.raises(ValueError):
            classify_range(50, labels=("low", "high"))


def test_bucket_index_order():
    assert [bucket_index(p) for p in (100, 95, 80, 50, 10, 5, 0)] == list(range(7))
