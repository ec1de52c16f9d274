"""Tests for ordinal formatting and result sentences."""

import pytest

from services.scoring.narrative import build_result_text, ordinal, ordinal_suffix


class TestOrdinal:
    @pytest.mark.parametrize("n,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
        (11, "11th"), (12, "12th"), (13, "13th"),
        (21, "21st"), (22, "22nd"), (23, "23rd"),
        (50, "50th"), (91, "91st"), (99, "99th"),
    ])
    def test_ordinal(self, n, expected):
        assert ordinal(n) == expected

    def test_suffix_accepts_numpy_like(self):
        assert ordinal_suffix(42.0) == "nd"


class TestBuildResultText:
    def test_npsych_sentence(self):
        text = build_result_text("Word list learning", "Average", 50)
        assert text == (
            "Word list learning fell within the Average range and ranked at the 50th "
            "percentile, indicating performance as good as or better than 50% of "
            "same-age peers from the general population."
        )

    def test_rating_scale_sentence(self):
        text = build_result_text("Anxiety", "At-Risk", 93, test_type="rating_scale")
        assert text == "Anxiety was rated in the At-Risk range (93rd percentile)."

    def test_validity_sentence(self):
        text = build_result_text("Trial 2", "WNL Score", 61, test_type="performance_validity")
        assert "classified as WNL Score" in text

    def test_falls_back_to_scale_name(self):
        text = build_result_text(None, "Average", 50, fallback_subject="Coding")
        assert text.startswith("Coding fell within")

    def test_unknown_test_type_uses_npsych_template(self):
        text = build_result_text("Reading", "Low Average", 21, test_type="questionnaire")
        assert "ranked at the 21st percentile" in text

    @pytest.mark.parametrize("description,range_label,percentile", [
        ("Coding", None, 50),
        ("Coding", "Average", None),
        (None, "Average", 50),
    ])
    def test_nothing_to_report(self, description, range_label, percentile):
        assert build_result_text(description, range_label, percentile) is None
