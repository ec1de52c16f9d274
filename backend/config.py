import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

# Patient datasets (neurocog / neurobehav / validity, or a combined neuropsych.csv)
DATA_DIR = Path(os.environ.get("NEURO_DATA_DIR", BASE_DIR.parent / "data"))
OUTPUT_DIR = Path(os.environ.get("NEURO_OUTPUT_DIR", BASE_DIR.parent / "output"))

REGISTRY_PATH = Path(os.environ.get(
    "NEURO_REGISTRY_PATH", BASE_DIR / "generator" / "metadata" / "domains.yaml",
))
LOOKUP_TABLE_PATH = Path(os.environ.get(
    "NEURO_LOOKUP_TABLE", BASE_DIR / "services" / "scoring" / "metadata" / "lookup_scales.csv",
))
TEST_CONFIG_PATH = Path(os.environ.get(
    "NEURO_TEST_CONFIGS", BASE_DIR / "services" / "scoring" / "metadata" / "test_configs.yaml",
))

# Dataset basenames, in registry data_source vocabulary
DATA_SOURCES = ("neurocog", "neurobehav", "validity")

# Decimal places for formatted "lower - upper" confidence intervals
CI_DECIMALS = 2

LOG_FILENAME = "batch_processing_log.csv"
SUMMARY_FILENAME = "run_summary.json"
LOCK_FILENAME = ".batch.lock"
