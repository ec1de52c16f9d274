"""Tests for patient dataset loading and z-score enrichment."""

import numpy as np
import pandas as pd
import pytest

from services.datasets import (
    add_z_from_percentile,
    add_z_stats,
    find_data_file,
    load_datasets,
    split_by_test_type,
)


def _neurocog():
    return pd.DataFrame([
        {"test": "rbans", "scale": "List Learning", "domain": "Memory",
         "subdomain": "Learning Efficiency", "score": 10, "percentile": 50},
        {"test": "rbans", "scale": "Story Memory", "domain": "Memory",
         "subdomain": "Learning Efficiency", "score": 7, "percentile": 16},
        {"test": "wisc5", "scale": "Coding", "domain": "Attention/Executive",
         "subdomain": "Processing Speed", "score": 13, "percentile": 84},
    ])


class TestZEnrichment:
    def test_z_from_percentile(self):
        df = add_z_from_percentile(_neurocog())
        assert list(df["z"]) == pytest.approx([0.0, -0.99, 0.99], abs=0.01)

    def test_existing_z_kept(self):
        df = _neurocog()
        df["z"] = [0.5, np.nan, np.nan]
        out = add_z_from_percentile(df)
        assert out.loc[0, "z"] == 0.5
        assert out.loc[1, "z"] == pytest.approx(-0.99, abs=0.01)

    def test_boundary_percentiles_left_missing(self):
        df = pd.DataFrame({"percentile": [0, 100, None]})
        assert add_z_from_percentile(df)["z"].isna().all()

    def test_group_stats(self):
        df = add_z_stats(add_z_from_percentile(_neurocog()))
        assert df.loc[0, "z_mean_domain"] == pytest.approx(-0.5, abs=0.01)
        assert df.loc[2, "z_mean_domain"] == pytest.approx(0.99, abs=0.01)
        assert np.isnan(df.loc[2, "z_sd_domain"])
        assert "z_mean_subdomain" in df.columns
        assert "z_mean_narrow" not in df.columns


class TestSplit:
    def test_split_by_test_type(self):
        df = pd.DataFrame({
            "scale": ["A", "B", "C", "D", "E"],
            "test_type": ["npsych_test", "rating_scale", "performance_validity",
                          "symptom_validity", "interview"],
        })
        parts = split_by_test_type(df)
        assert set(parts) == {"neurocog", "neurobehav", "validity"}
        assert list(parts["validity"]["scale"]) == ["C", "D"]
        assert sum(len(p) for p in parts.values()) == 4

    def test_no_test_type_column(self):
        parts = split_by_test_type(pd.DataFrame({"scale": ["A"]}))
        assert list(parts) == ["neurocog"]


class TestLoadDatasets:
    def test_per_source_csv(self, tmp_path):
        _neurocog().to_csv(tmp_path / "neurocog.csv", index=False)
        datasets = load_datasets(tmp_path)
        assert list(datasets) == ["neurocog"]
        assert len(datasets["neurocog"]) == 3
        assert "z" in datasets["neurocog"].columns

    def test_preference_order(self, tmp_path):
        _neurocog().to_csv(tmp_path / "neurocog.csv", index=False)
        _neurocog().head(1).to_feather(tmp_path / "neurocog.feather")
        assert find_data_file(tmp_path, "neurocog").suffix == ".feather"
        assert len(load_datasets(tmp_path)["neurocog"]) == 1

    def test_combined_file_split(self, tmp_path):
        df = _neurocog()
        df["test_type"] = ["npsych_test", "npsych_test", "rating_scale"]
        df.to_csv(tmp_path / "neuropsych.csv", index=False)
        datasets = load_datasets(tmp_path)
        assert len(datasets["neurocog"]) == 2
        assert len(datasets["neurobehav"]) == 1

    def test_empty_directory(self, tmp_path):
        assert load_datasets(tmp_path) == {}
