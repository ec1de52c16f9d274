"""Generic domain processor: lookup → normalize → CI → classify → narrative.

One processor type serves every instrument; per-test variation (score type,
reliability, label set, required columns) comes from TestConfig data loaded
from metadata/test_configs.yaml.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import yaml

from config import CI_DECIMALS, TEST_CONFIG_PATH
from models.schemas import DomainConfig
from services.errors import (
    InvalidReliability,
    InvalidScoreType,
    InvalidTestType,
    MissingColumnsError,
)
from services.scoring.classification import classify_range
from services.scoring.confidence import calc_ci_95
from services.scoring.lookup import LookupTable, get_lookup_table, unresolved_keys
from services.scoring.narrative import build_result_text
from services.scoring.score_types import (
    SCORE_TYPE_PARAMS,
    SUPPLIED_PERCENTILE_TYPES,
    footnotes_for,
)
from services.scoring.transform import (
    compute_percentile,
    percentile_to_z,
    round_percentile,
    safe_float,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("domain", "scale")
SCORE_COLUMNS = ("score", "percentile")

RESULT_COLUMNS = [
    "scale", "raw_score", "score", "percentile", "range", "ci_95", "description", "result",
]
DIAGNOSTIC_COLUMNS = [
    "test", "test_name", "domain", "subdomain", "narrow", "z",
    "score_type", "test_type", "lookup_status", "issues",
]

DEFAULT_TEST_TYPE = "npsych_test"

# Display names that tell pediatric and adult emotion batteries apart
CHILD_EMOTION_DOMAIN = "Behavioral/Emotional/Social"
ADULT_EMOTION_DOMAIN = "Emotional/Behavioral/Personality"


# ──────────────────────────────────────────────────────────────
# Test configuration
# ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TestConfig:
    test: str
    test_name: str | None = None
    score_type: str | None = None
    reliability: float | None = None
    test_type: str = DEFAULT_TEST_TYPE
    columns: tuple[str, ...] = ()


def load_test_configs(path: Path = TEST_CONFIG_PATH) -> dict[str, TestConfig]:
    """Load per-instrument configuration keyed by test identifier."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    configs: dict[str, TestConfig] = {}
    for test, fields in (data.get("tests") or {}).items():
        fields = dict(fields or {})
        fields["columns"] = tuple(fields.get("columns") or ())
        configs[test] = TestConfig(test=test, **fields)
    logger.info("Loaded %d test configurations from %s", len(configs), path)
    return configs


# ──────────────────────────────────────────────────────────────
# Schema validation and row selection
# ──────────────────────────────────────────────────────────────

def validate_schema(df: pd.DataFrame, context: str = "dataset") -> None:
    """Fail loudly when the columns every domain needs are absent."""
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if not any(c in df.columns for c in SCORE_COLUMNS):
        missing.append("score or percentile")
    if missing:
        raise MissingColumnsError(missing, context=context)


def extract_columns(df: pd.DataFrame, columns, context: str = "dataset") -> pd.DataFrame:
    """Select columns by name; raises MissingColumnsError instead of shifting data."""
    columns = list(columns)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumnsError(missing, context=context)
    return df.loc[:, columns]


def select_domain_rows(df: pd.DataFrame, display_names) -> pd.DataFrame:
    """Rows whose domain is any of `display_names` and that carry a score or percentile."""
    validate_schema(df)
    in_domain = df["domain"].isin(list(display_names))
    has_value = pd.Series(False, index=df.index)
    for col in SCORE_COLUMNS:
        if col in df.columns:
            has_value |= pd.to_numeric(df[col], errors="coerce").notna()
    return df[in_domain & has_value].copy()


def detect_variant(phenotype: str, rows: pd.DataFrame) -> str | None:
    """'child' or 'adult' for the emotion phenotype, based on which labels are present."""
    if phenotype != "emotion" or "domain" not in rows.columns:
        return None
    labels = set(rows["domain"].dropna())
    if CHILD_EMOTION_DOMAIN in labels:
        return "child"
    if ADULT_EMOTION_DOMAIN in labels:
        return "adult"
    return None


def restrict_to_variant(rows: pd.DataFrame, variant: str | None) -> pd.DataFrame:
    """Drop adult-only emotion rows when the child battery is present."""
    if variant != "child":
        return rows
    adult = rows["domain"] == ADULT_EMOTION_DOMAIN
    if adult.any():
        logger.info("Child emotion data present; dropping %d adult-labelled row(s)", int(adult.sum()))
    return rows[~adult]


# ──────────────────────────────────────────────────────────────
# Result containers
# ──────────────────────────────────────────────────────────────

@dataclass
class DomainResult:
    domain_key: str
    table: pd.DataFrame
    unresolved: list[tuple] = field(default_factory=list)
    subdomain_summary: list[dict] = field(default_factory=list)
    footnotes: list[str] = field(default_factory=list)
    variant: str | None = None

    @property
    def n_rows(self) -> int:
        return len(self.table)


def summarize_z(table: pd.DataFrame, group_col: str = "subdomain") -> list[dict]:
    """Mean/SD of z and mean percentile per group (rows with no group are left out)."""
    if group_col not in table.columns or table.empty:
        return []
    df = table[[group_col, "z", "percentile"]].copy()
    df["z"] = pd.to_numeric(df["z"], errors="coerce")
    df["percentile"] = pd.to_numeric(df["percentile"], errors="coerce")
    df = df[df[group_col].notna()]
    summary = []
    for name, grp in df.groupby(group_col, sort=False):
        z = grp["z"].dropna()
        pct = grp["percentile"].dropna()
        summary.append({
            group_col: name,
            "n": int(len(grp)),
            "z_mean": round(float(z.mean()), 2) if len(z) else None,
            "z_sd": round(float(z.std(ddof=1)), 2) if len(z) >= 2 else None,
            "mean_percentile": round(float(pct.mean()), 1) if len(pct) else None,
        })
    return summary


# ──────────────────────────────────────────────────────────────
# Processor
# ──────────────────────────────────────────────────────────────

def _text(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    return str(value)


class DomainProcessor:
    """Builds a domain's result table from its eligible rows.

    Row-level failures (unknown score type, bad reliability, unknown label
    set) are written to the row's `issues` column; they never fail the domain.
    """

    def __init__(
        self,
        lookup: Optional[LookupTable] = None,
        test_configs: Optional[dict[str, TestConfig]] = None,
        ci_decimals: int = CI_DECIMALS,
    ):
        self._lookup = lookup
        self._test_configs = test_configs
        self.ci_decimals = ci_decimals

    @property
    def lookup(self) -> LookupTable:
        if self._lookup is None:
            self._lookup = get_lookup_table()
        return self._lookup

    @property
    def test_configs(self) -> dict[str, TestConfig]:
        if self._test_configs is None:
            self._test_configs = load_test_configs()
        return self._test_configs

    def config_for(self, test: str | None) -> TestConfig:
        if test is not None and test in self.test_configs:
            return self.test_configs[test]
        return TestConfig(test=test or "")

    def process(self, domain: DomainConfig, rows: pd.DataFrame) -> DomainResult:
        validate_schema(rows, context=f"domain '{domain.key}'")
        variant = detect_variant(domain.phenotype, rows)
        rows = restrict_to_variant(rows, variant)
        annotated = self.lookup.annotate(rows)
        self._check_test_columns(annotated, domain.key)

        records = [self.score_row(rec) for rec in annotated.to_dict(orient="records")]
        table = self._build_table(records)

        unresolved = unresolved_keys(table)
        if unresolved:
            logger.warning(
                "%s: %d row(s) without lookup metadata: %s",
                domain.key, len(unresolved), unresolved,
            )

        return DomainResult(
            domain_key=domain.key,
            table=table,
            unresolved=unresolved,
            subdomain_summary=summarize_z(table, "subdomain"),
            footnotes=footnotes_for(table["score_type"].dropna().unique()),
            variant=variant,
        )

    def _check_test_columns(self, df: pd.DataFrame, domain_key: str) -> None:
        if "test" not in df.columns:
            return
        for test in df["test"].dropna().unique():
            cfg = self.config_for(test)
            if cfg.columns:
                extract_columns(df, cfg.columns, context=f"{domain_key}/{test}")

    def score_row(self, rec: dict) -> dict:
        """Run one row through normalization, CI, classification and narrative."""
        cfg = self.config_for(_text(rec.get("test")))
        issues: list[str] = []

        score_type = _text(rec.get("score_type")) or cfg.score_type
        test_type = _text(rec.get("test_type")) or cfg.test_type or DEFAULT_TEST_TYPE
        score = safe_float(rec.get("score"))
        supplied_pct = safe_float(rec.get("percentile"))
        if supplied_pct is not None and not (0 <= supplied_pct <= 100):
            issues.append(f"Supplied percentile out of range 0-100: {supplied_pct:g}")
            supplied_pct = None

        z = None
        percentile = None
        if score_type is None or score_type in SUPPLIED_PERCENTILE_TYPES:
            percentile = round_percentile(supplied_pct)
        else:
            try:
                res = compute_percentile(score, score_type)
                z = res.z
                percentile = res.percentile
                if percentile is None:
                    percentile = round_percentile(supplied_pct)
            except InvalidScoreType as e:
                issues.append(str(e))

        if z is None and percentile is not None:
            z = percentile_to_z(percentile)

        ci_95 = _text(rec.get("ci_95"))
        if cfg.reliability is not None and score is not None and score_type in SCORE_TYPE_PARAMS:
            mean, sd = SCORE_TYPE_PARAMS[score_type]
            try:
                ci = calc_ci_95(score, mean, sd, cfg.reliability, decimals=self.ci_decimals)
                ci_95 = ci.formatted if ci is not None else ci_95
            except InvalidReliability as e:
                issues.append(str(e))

        range_label = None
        try:
            range_label = classify_range(percentile, test_type=test_type)
        except (InvalidTestType, ValueError) as e:
            issues.append(str(e))

        scale = _text(rec.get("scale"))
        description = _text(rec.get("description"))
        result = build_result_text(
            description, range_label, percentile,
            test_type=test_type, fallback_subject=scale,
        )

        out = dict(rec)
        out.update({
            "scale": scale,
            "raw_score": safe_float(rec.get("raw_score")),
            "score": score,
            "percentile": percentile,
            "range": range_label,
            "ci_95": ci_95,
            "description": description,
            "result": result,
            "test_name": _text(rec.get("test_name")) or cfg.test_name,
            "z": round(z, 2) if z is not None else None,
            "score_type": score_type,
            "test_type": test_type,
            "issues": "; ".join(issues) if issues else None,
        })
        return out

    def _build_table(self, records: list[dict]) -> pd.DataFrame:
        columns = RESULT_COLUMNS + DIAGNOSTIC_COLUMNS
        table = pd.DataFrame(records)
        for col in columns:
            if col not in table.columns:
                table[col] = None
        table = table[columns].copy()
        table["percentile"] = table["percentile"].astype("Int64")
        return table.reset_index(drop=True)
