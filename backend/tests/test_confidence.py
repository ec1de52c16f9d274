"""Tests for true-score 95% confidence intervals."""

import math

import pytest

from services.errors import InvalidReliability
from services.scoring.confidence import Z_95, calc_ci_95


class TestCalcCi95:
    def test_score_at_mean(self):
        ci = calc_ci_95(10, mean=10, standard_deviation=3, reliability=0.85)
        assert ci.true_score == 10
        assert ci.see == pytest.approx(3 * math.sqrt(0.85 * 0.15), abs=1e-3)
        assert ci.lower == pytest.approx(7.90, abs=0.01)
        assert ci.upper == pytest.approx(12.10, abs=0.01)
        assert ci.formatted == "7.90 - 12.10"

    def test_regression_toward_mean(self):
        ci = calc_ci_95(130, mean=100, standard_deviation=15, reliability=0.9)
        assert ci.true_score == pytest.approx(127.0)
        assert ci.lower < ci.true_score < ci.upper

    def test_symmetric_about_true_score(self):
        ci = calc_ci_95(62, mean=50, standard_deviation=10, reliability=0.8, decimals=3)
        margin = Z_95 * 10 * math.sqrt(0.8 * 0.2)
        assert ci.upper - ci.true_score == pytest.approx(margin, abs=1e-3)
        assert ci.true_score - ci.lower == pytest.approx(margin, abs=1e-3)

    def test_perfect_reliability_collapses(self):
        ci = calc_ci_95(12, mean=10, standard_deviation=3, reliability=1.0)
        assert ci.lower == ci.upper == ci.true_score == 12

    def test_decimals(self):
        ci = calc_ci_95(10, 10, 3, 0.85, decimals=1)
        assert ci.formatted == "7.9 - 12.1"

    def test_missing_score(self):
        assert calc_ci_95(None, 10, 3, 0.85) is None
        assert calc_ci_95(float("nan"), 10, 3, 0.85) is None

    @pytest.mark.parametrize("r", [0, -0.2, 1.01, None, "high"])
    def test_invalid_reliability(self, r):
        with pytest.raises(InvalidReliability):
            calc_ci_95(10, 10, 3, r)

    def test_non_positive_sd(self):
        with pytest.raises(ValueError):
            calc_ci_95(10, 10, 0, 0.85)
