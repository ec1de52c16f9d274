"""Lookup Resolver: joins (test, scale) keys against the scale reference table.

Matching is exact and case-sensitive. Rows without a match are kept and
marked `unresolved` so gaps stay visible in output and diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from config import LOOKUP_TABLE_PATH
from services.errors import LookupNotFound, MissingColumnsError

logger = logging.getLogger(__name__)

LOOKUP_KEY = ("test", "scale")
METADATA_COLUMNS = (
    "test_name",
    "domain",
    "subdomain",
    "narrow",
    "description",
    "score_type",
    "test_type",
)

RESOLVED = "resolved"
UNRESOLVED = "unresolved"


def _clean(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


@dataclass(frozen=True)
class LookupResult:
    test: str | None
    scale: str | None
    metadata: dict | None

    @property
    def found(self) -> bool:
        return self.metadata is not None


class LookupTable:
    """In-memory (test, scale) → metadata index."""

    def __init__(self, table: pd.DataFrame):
        missing = [c for c in LOOKUP_KEY if c not in table.columns]
        if missing:
            raise MissingColumnsError(missing, context="lookup table")

        dup = table.duplicated(subset=list(LOOKUP_KEY), keep="first")
        if dup.any():
            logger.warning(
                "Lookup table has %d duplicate (test, scale) keys; keeping first occurrence",
                int(dup.sum()),
            )
        table = table[~dup]

        self.metadata_columns = [c for c in METADATA_COLUMNS if c in table.columns]
        self._index: dict[tuple, dict] = {}
        for rec in table.to_dict(orient="records"):
            key = (_clean(rec["test"]), _clean(rec["scale"]))
            self._index[key] = {c: _clean(rec.get(c)) for c in self.metadata_columns}

    @classmethod
    def from_csv(cls, path: Path) -> "LookupTable":
        df = pd.read_csv(path, dtype=str)
        logger.info("Loaded %d lookup rows from %s", len(df), path)
        return cls(df)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key) -> bool:
        return tuple(key) in self._index

    def resolve(self, test: str | None, scale: str | None) -> LookupResult:
        meta = self._index.get((test, scale))
        return LookupResult(test=test, scale=scale, metadata=dict(meta) if meta is not None else None)

    def require(self, test: str | None, scale: str | None) -> dict:
        result = self.resolve(test, scale)
        if not result.found:
            raise LookupNotFound(test, scale)
        return result.metadata

    def annotate(self, df: pd.DataFrame) -> pd.DataFrame:
        """Left-join lookup metadata onto rows, filling only missing values.

        Adds `lookup_status` (resolved / unresolved). Never drops rows.
        """
        records = df.to_dict(orient="records")
        out = []
        for rec in records:
            result = self.resolve(_clean(rec.get("test")), _clean(rec.get("scale")))
            if result.found:
                for col, value in result.metadata.items():
                    if _clean(rec.get(col)) is None:
                        rec[col] = value
                rec["lookup_status"] = RESOLVED
            else:
                rec["lookup_status"] = UNRESOLVED
            out.append(rec)

        columns = list(df.columns)
        for col in (*self.metadata_columns, "lookup_status"):
            if col not in columns:
                columns.append(col)
        return pd.DataFrame(out, columns=columns, index=df.index)


def unresolved_keys(df: pd.DataFrame) -> list[tuple]:
    """(test, scale) pairs of rows the lookup could not resolve, in row order."""
    if "lookup_status" not in df.columns:
        return []
    rows = df[df["lookup_status"] == UNRESOLVED]
    tests = rows["test"] if "test" in rows.columns else [None] * len(rows)
    return [(_clean(t), _clean(s)) for t, s in zip(tests, rows["scale"])]


# Global lookup instance
_lookup: Optional[LookupTable] = None


def get_lookup_table(path: Path | None = None) -> LookupTable:
    """Shared lookup table loaded from LOOKUP_TABLE_PATH (or `path`) on first use."""
    global _lookup
    if path is not None:
        return LookupTable.from_csv(path)
    if _lookup is None:
        _lookup = LookupTable.from_csv(LOOKUP_TABLE_PATH)
    return _lookup
