"""Pure rule functions mapping percentiles to named performance ranges.

All instrument families share one percentile bucket structure; only the
vocabulary differs, so label sets are data keyed by test-type category.
"""

from __future__ import annotations

from typing import Sequence

from services.errors import InvalidTestType

# Inclusive lower bound of each bucket, highest first:
# ≥98, 91–97, 75–90, 25–74, 9–24, 2–8, <2
RANGE_LOWER_BOUNDS: tuple[int, ...] = (98, 91, 75, 25, 9, 2, 0)

NPSYCH_LABELS = (
    "Exceptionally High",
    "Above Average",
    "High Average",
    "Average",
    "Low Average",
    "Below Average",
    "Exceptionally Low",
)

# Elevated scores on rating scales indicate more symptoms
RATING_SCALE_LABELS = (
    "Clinically Significant",
    "At-Risk",
    "High Average",
    "Average",
    "Low Average",
    "Below Average",
    "Exceptionally Low",
)

VALIDITY_INDICATOR_LABELS = (
    "WNL Score",
    "WNL Score",
    "WNL Score",
    "WNL Score",
    "Low Average Score",
    "Below Average Score",
    "Exceptionally Low Score",
)

# Over-reporting shows up at the top of the distribution
SYMPTOM_VALIDITY_LABELS = (
    "Clinically Significant",
    "At-Risk",
    "WNL Score",
    "WNL Score",
    "WNL Score",
    "WNL Score",
    "WNL Score",
)

LABEL_SETS: dict[str, tuple[str, ...]] = {
    "npsych_test": NPSYCH_LABELS,
    "rating_scale": RATING_SCALE_LABELS,
    "validity_indicator": VALIDITY_INDICATOR_LABELS,
    "performance_validity": VALIDITY_INDICATOR_LABELS,
    "symptom_validity": SYMPTOM_VALIDITY_LABELS,
}


def get_label_set(test_type: str) -> tuple[str, ...]:
    try:
        return LABEL_SETS[test_type]
    except (KeyError, TypeError):
        raise InvalidTestType(test_type) from None


def bucket_index(percentile: int) -> int:
    """Index into RANGE_LOWER_BOUNDS of the bucket containing `percentile`."""
    if percentile < 0 or percentile > 100:
        raise ValueError(f"Percentile out of range 0–100: {percentile}")
    for i, lower in enumerate(RANGE_LOWER_BOUNDS):
        if percentile >= lower:
            return i
    return len(RANGE_LOWER_BOUNDS) - 1


def classify_range(
    percentile: int | None,
    test_type: str = "npsych_test",
    labels: Sequence[str] | None = None,
) -> str | None:
    """Classify an integer percentile into a range label.

    `labels` overrides the category's label set and must hold one label per
    bucket, highest bucket first. Returns None for a missing percentile.
    """
    if percentile is None:
        return None
    if labels is None:
        labels = get_label_set(test_type)
    elif len(labels) != len(RANGE_LOWER_BOUNDS):
        raise ValueError(
            f"Label set needs {len(RANGE_LOWER_BOUNDS)} labels, got {len(labels)}"
        )
    return labels[bucket_index(int(percentile))]
