"""Sentence templates for per-scale result text.

Ordinal suffixes are a formatting concern and live here, not in the range
classifier.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

NPSYCH_TEMPLATE = (
    "{description} fell within the {range} range and ranked at the {ordinal} percentile, "
    "indicating performance as good as or better than {percentile}% of same-age peers "
    "from the general population."
)

RATING_TEMPLATE = (
    "{description} was rated in the {range} range ({ordinal} percentile)."
)

VALIDITY_TEMPLATE = (
    "{description} was classified as {range} ({ordinal} percentile)."
)

NARRATIVE_TEMPLATES: dict[str, str] = {
    "npsych_test": NPSYCH_TEMPLATE,
    "rating_scale": RATING_TEMPLATE,
    "validity_indicator": VALIDITY_TEMPLATE,
    "performance_validity": VALIDITY_TEMPLATE,
    "symptom_validity": VALIDITY_TEMPLATE,
}


def ordinal_suffix(n: int) -> str:
    """English ordinal suffix: 1st, 2nd, 3rd, 4th, 11th–13th, 21st, ..."""
    n = int(n)
    if 10 <= n % 100 <= 20:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")


def ordinal(n: int) -> str:
    return f"{int(n)}{ordinal_suffix(n)}"


def build_result_text(
    description: str | None,
    range_label: str | None,
    percentile: int | None,
    test_type: str = "npsych_test",
    fallback_subject: str | None = None,
) -> str | None:
    """Render the result sentence for one scale.

    Returns None when there is nothing to report (no percentile or range).
    The description falls back to `fallback_subject` (usually the scale name).
    """
    if percentile is None or range_label is None:
        return None
    subject = description or fallback_subject
    if not subject:
        return None
    template = NARRATIVE_TEMPLATES.get(test_type)
    if template is None:
        logger.debug("No narrative template for %s; using neuropsych template", test_type)
        template = NPSYCH_TEMPLATE
    pct = int(percentile)
    return template.format(
        description=subject,
        range=range_label,
        ordinal=ordinal(pct),
        percentile=pct,
    )
