"""CLI entry point: loads patient data, runs every domain, writes tables and the log.

Usage:
    cd backend && python -m generator.generate [data_dir] [output_dir]

Exit codes: 0 when the run completes (even with skipped or failed domains),
1 on a fatal error, 75 when another run holds the lock.
"""

import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import DATA_DIR, LOCK_FILENAME, OUTPUT_DIR, REGISTRY_PATH
from generator.batch import (
    BatchOrchestrator,
    FileRunLock,
    RunState,
    write_domain_results,
    write_processing_log,
)
from generator.registry import load_registry
from services.datasets import load_datasets
from services.errors import AlreadyRunning, RegistryUnavailable

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ALREADY_RUNNING = 75  # EX_TEMPFAIL


def generate(
    data_dir: Path = DATA_DIR,
    output_dir: Path = OUTPUT_DIR,
    registry_path: Path = REGISTRY_PATH,
) -> int:
    """Run the full batch for one patient and return the process exit code."""
    data_dir = Path(data_dir)
    output_dir = Path(output_dir)
    print(f"=== Processing domains from {data_dir} ===")

    # Phase 1: Registry
    print("Phase 1: Loading domain registry...")
    try:
        registry = load_registry(registry_path)
    except RegistryUnavailable as e:
        print(f"ERROR: {e}")
        return EXIT_FATAL
    print(f"  {len(registry)} domains registered")

    # Phase 2: Patient data
    print("Phase 2: Loading patient data...")
    if not data_dir.is_dir():
        print(f"ERROR: Data directory '{data_dir}' not found")
        return EXIT_FATAL
    try:
        datasets = load_datasets(data_dir)
    except Exception as e:
        print(f"ERROR: Failed to read patient data: {e}")
        return EXIT_FATAL
    if not datasets:
        print(f"ERROR: No neurocog, neurobehav or validity data in {data_dir}")
        return EXIT_FATAL
    for name, df in datasets.items():
        print(f"  {name}: {len(df)} rows")

    # Phase 3: Batch
    print("Phase 3: Processing domains...")
    output_dir.mkdir(parents=True, exist_ok=True)
    orchestrator = BatchOrchestrator(run_state=RunState(FileRunLock(output_dir / LOCK_FILENAME)))
    try:
        summary = orchestrator.run(registry, datasets)
    except AlreadyRunning as e:
        print(f"ERROR: {e} (lock file {output_dir / LOCK_FILENAME})")
        return EXIT_ALREADY_RUNNING

    for entry in summary.log:
        print(f"  {entry.domain:<14} {entry.status:<8} {entry.message}")
    for key in summary.duplicates:
        print(f"  WARNING: duplicate registry entry '{key}' skipped")

    # Phase 4: Output
    print("Writing output files...")
    log_path = write_processing_log(summary.log, output_dir)
    print(f"  wrote {log_path.name} ({len(summary.log)} entries)")
    for path in write_domain_results(summary, output_dir):
        print(f"  wrote {path.name}")

    counts = summary.counts
    print(f"\n=== Batch complete: {output_dir} ===")
    print(f"  Success: {counts.success}")
    print(f"  Skipped: {counts.skipped}")
    print(f"  Errors: {counts.errors}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) > 2:
        print("Usage: python -m generator.generate [data_dir] [output_dir]")
        return EXIT_FATAL
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    data_dir = Path(argv[0]) if len(argv) >= 1 else DATA_DIR
    output_dir = Path(argv[1]) if len(argv) == 2 else OUTPUT_DIR
    return generate(data_dir, output_dir)


if __name__ == "__main__":
    sys.exit(main())
