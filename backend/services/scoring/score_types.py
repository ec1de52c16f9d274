"""Score-type conventions: normative (mean, SD) pairs and report footnotes."""

from __future__ import annotations

from services.errors import InvalidScoreType

# ──────────────────────────────────────────────────────────────
# Normative parameters
# ──────────────────────────────────────────────────────────────

SCORE_TYPE_PARAMS: dict[str, tuple[float, float]] = {
    "z_score":        (0.0, 1.0),
    "scaled_score":   (10.0, 3.0),
    "t_score":        (50.0, 10.0),
    "standard_score": (100.0, 15.0),
}

# Types that carry their own percentile (or none) and are not normalized
SUPPLIED_PERCENTILE_TYPES = frozenset({"raw_score", "base_rate", "percentile"})

SCORE_TYPES = frozenset(SCORE_TYPE_PARAMS) | SUPPLIED_PERCENTILE_TYPES


def is_normalizable(score_type: str | None) -> bool:
    return score_type in SCORE_TYPE_PARAMS


def get_params(score_type: str) -> tuple[float, float]:
    """Return (mean, sd) for a normalizable score type.

    Raises InvalidScoreType for anything outside the four normalizable types.
    """
    try:
        return SCORE_TYPE_PARAMS[score_type]
    except (KeyError, TypeError):
        raise InvalidScoreType(score_type) from None


# ──────────────────────────────────────────────────────────────
# Footnotes
# ──────────────────────────────────────────────────────────────

SCORE_TYPE_FOOTNOTES: dict[str, str] = {
    "standard_score": "Standard score: Mean = 100 [50th‰], SD ± 15 [16th‰, 84th‰]",
    "scaled_score": "Scaled score: Mean = 10 [50th‰], SD ± 3 [16th‰, 84th‰]",
    "t_score": "T score: Mean = 50 [50th‰], SD ± 10 [16th‰, 84th‰]",
    "z_score": "z-score: Mean = 0 [50th‰], SD ± 1 [16th‰, 84th‰]",
    "raw_score": "Raw score: Untransformed test score",
    "base_rate": "Base rate: Percentage of the normative sample at or below this score",
    "percentile": "Percentile rank: Percentage of normative sample scoring at or below this level",
}

# Footnote order in reports follows this sequence, not input order
_FOOTNOTE_ORDER = list(SCORE_TYPE_FOOTNOTES)


def footnotes_for(score_types) -> list[str]:
    """Footnote lines for the distinct known score types in `score_types`."""
    present = {st for st in score_types if isinstance(st, str)}
    return [SCORE_TYPE_FOOTNOTES[st] for st in _FOOTNOTE_ORDER if st in present]
