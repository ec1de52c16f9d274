"""Patient dataset loading: per-source files, or one combined file split by test type.

Each source (neurocog, neurobehav, validity) is read from the first of
<name>.parquet, <name>.feather, <name>.csv found in the data directory. When
none exist, a combined neuropsych.csv is split by `test_type`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd
from scipy import stats

from config import DATA_SOURCES

logger = logging.getLogger(__name__)

FILE_READERS = (
    (".parquet", pd.read_parquet),
    (".feather", pd.read_feather),
    (".csv", pd.read_csv),
)

COMBINED_FILENAME = "neuropsych.csv"

# test_type → data source for a combined file
TEST_TYPE_SOURCES: dict[str, str] = {
    "npsych_test": "neurocog",
    "rating_scale": "neurobehav",
    "validity_indicator": "validity",
    "performance_validity": "validity",
    "symptom_validity": "validity",
}

Z_GROUP_COLUMNS = ("domain", "subdomain", "narrow")


def find_data_file(data_dir: Path, name: str) -> Path | None:
    for suffix, _reader in FILE_READERS:
        path = data_dir / f"{name}{suffix}"
        if path.is_file():
            return path
    return None


def read_data_file(path: Path) -> pd.DataFrame:
    for suffix, reader in FILE_READERS:
        if path.suffix == suffix:
            return reader(path)
    raise ValueError(f"Unsupported data file type: {path.name}")


def split_by_test_type(df: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """Partition a combined table into data sources using its `test_type` column."""
    if "test_type" not in df.columns:
        logger.warning("Combined dataset has no test_type column; treating all rows as neurocog")
        return {"neurocog": df.copy()}
    source = df["test_type"].map(TEST_TYPE_SOURCES)
    unknown = df.loc[source.isna(), "test_type"].dropna().unique()
    if len(unknown):
        logger.warning("Rows with unrecognized test_type left out: %s", sorted(map(str, unknown)))
    out = {}
    for name in DATA_SOURCES:
        part = df[source == name]
        if not part.empty:
            out[name] = part.reset_index(drop=True)
    return out


def add_z_from_percentile(df: pd.DataFrame) -> pd.DataFrame:
    """Fill `z` from `percentile` (Φ⁻¹(p/100)) where it is missing."""
    if "percentile" not in df.columns:
        return df
    df = df.copy()
    pct = pd.to_numeric(df["percentile"], errors="coerce")
    valid = (pct > 0) & (pct < 100)
    z_from_pct = pd.Series(np.nan, index=df.index)
    z_from_pct[valid] = stats.norm.ppf(pct[valid] / 100)
    if "z" in df.columns:
        df["z"] = pd.to_numeric(df["z"], errors="coerce").fillna(z_from_pct)
    else:
        df["z"] = z_from_pct
    df["z"] = df["z"].round(2)
    return df


def add_z_stats(df: pd.DataFrame, groups=Z_GROUP_COLUMNS) -> pd.DataFrame:
    """Add z_mean_<g> / z_sd_<g> per group column present in the table."""
    if "z" not in df.columns:
        return df
    df = df.copy()
    z = pd.to_numeric(df["z"], errors="coerce")
    for col in groups:
        if col not in df.columns:
            continue
        grouped = z.groupby(df[col])
        df[f"z_mean_{col}"] = grouped.transform("mean").round(2)
        df[f"z_sd_{col}"] = grouped.transform("std").round(2)
    return df


def prepare(df: pd.DataFrame) -> pd.DataFrame:
    return add_z_stats(add_z_from_percentile(df))


def load_datasets(data_dir: Path) -> dict[str, pd.DataFrame]:
    """Load every available data source from `data_dir`.

    Sources that are absent are simply missing from the result; the batch
    orchestrator records their domains as skipped.
    """
    data_dir = Path(data_dir)
    datasets: dict[str, pd.DataFrame] = {}
    for name in DATA_SOURCES:
        path = find_data_file(data_dir, name)
        if path is None:
            continue
        datasets[name] = prepare(read_data_file(path))
        logger.info("Loaded %s: %d rows from %s", name, len(datasets[name]), path.name)

    if not datasets:
        combined = data_dir / COMBINED_FILENAME
        if combined.is_file():
            logger.info("Splitting combined dataset %s by test_type", combined.name)
            for name, part in split_by_test_type(pd.read_csv(combined)).items():
                datasets[name] = prepare(part)
    return datasets
