"""Pure functions converting standardized scores to z-scores and percentiles.

Percentile rounding policy:
  - raw < 1   → ceiling (never report a 0th percentile)
  - raw > 99  → floor   (never report a 100th percentile)
  - otherwise → nearest integer, halves rounded up
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy import stats

from services.scoring.score_types import get_params

_MIN_REPORTED = 1
_MAX_REPORTED = 99


@dataclass(frozen=True)
class PercentileResult:
    z: float | None
    percentile_raw: float | None
    percentile: int | None


def safe_float(v) -> float | None:
    if v is None:
        return None
    try:
        f = float(v)
        return None if (np.isnan(f) or np.isinf(f)) else f
    except (ValueError, TypeError):
        return None


def score_to_z(score, score_type: str) -> float | None:
    """z = (score - mean) / sd for the score type's normative pair."""
    mean, sd = get_params(score_type)
    s = safe_float(score)
    if s is None:
        return None
    return (s - mean) / sd


def z_to_percentile_raw(z: float) -> float:
    """100 · Φ(z), unrounded."""
    return float(stats.norm.cdf(z) * 100)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_percentile(percentile_raw) -> int | None:
    """Apply the reporting rounding policy to an unrounded percentile."""
    p = safe_float(percentile_raw)
    if p is None:
        return None
    if p < 1:
        rounded = math.ceil(p)
    elif p > 99:
        rounded = math.floor(p)
    else:
        rounded = round_half_up(p)
    # Φ underflows to exactly 0/100 for extreme z
    return min(max(rounded, _MIN_REPORTED), _MAX_REPORTED)


def compute_percentile(score, score_type: str) -> PercentileResult:
    """Normalize a score and derive its reported percentile.

    Raises InvalidScoreType when score_type has no (mean, sd) pair.
    A missing score yields a result with every field None; callers must
    treat that as "not computable", never as 0.
    """
    z = score_to_z(score, score_type)
    if z is None:
        return PercentileResult(z=None, percentile_raw=None, percentile=None)
    raw = z_to_percentile_raw(z)
    return PercentileResult(z=z, percentile_raw=raw, percentile=round_percentile(raw))


def percentile_to_z(percentile) -> float | None:
    """Inverse normal of a percentile (0–100 exclusive); back-fills z for percentile-only rows."""
    p = safe_float(percentile)
    if p is None or p <= 0 or p >= 100:
        return None
    return float(stats.norm.ppf(p / 100))
