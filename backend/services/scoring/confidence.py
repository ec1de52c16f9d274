"""True-score estimate and 95% confidence band from test reliability."""

from __future__ import annotations

import math
from dataclasses import dataclass

from services.errors import InvalidReliability
from services.scoring.transform import safe_float

Z_95 = 1.96


@dataclass(frozen=True)
class ConfidenceInterval:
    true_score: float
    see: float
    lower: float
    upper: float
    decimals: int = 2

    @property
    def formatted(self) -> str:
        return f"{self.lower:.{self.decimals}f} - {self.upper:.{self.decimals}f}"


def _validate_reliability(reliability) -> float:
    r = safe_float(reliability)
    if r is None or not (0 < r <= 1):
        raise InvalidReliability(reliability)
    return r


def calc_ci_95(
    score,
    mean: float,
    standard_deviation: float,
    reliability: float,
    decimals: int = 2,
) -> ConfidenceInterval | None:
    """95% interval around the estimated true score.

    true_score = mean + r · (score − mean)
    SEE        = sd · sqrt(r · (1 − r))
    interval   = true_score ± 1.96 · SEE

    Returns None when the score is missing. Raises InvalidReliability
    unless 0 < reliability ≤ 1.
    """
    r = _validate_reliability(reliability)
    if standard_deviation is None or standard_deviation <= 0:
        raise ValueError(f"Standard deviation must be positive, got {standard_deviation!r}")
    s = safe_float(score)
    if s is None:
        return None

    true_score = mean + r * (s - mean)
    see = standard_deviation * math.sqrt(r * (1 - r))
    margin = Z_95 * see
    return ConfidenceInterval(
        true_score=round(true_score, decimals),
        see=round(see, 3),
        lower=round(true_score - margin, decimals),
        upper=round(true_score + margin, decimals),
        decimals=decimals,
    )
