"""Batch orchestrator: visits each registry domain once and isolates failures.

Per-domain flow:
    PENDING → DATA_CHECK → SKIPPED
                         → PROCESSING → SUCCESS | ERROR

Only the orchestrator appends to the processing log. A domain that raises is
recorded as an error and the run moves on to the next domain.
"""

from __future__ import annotations

import json
import logging
import math
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pandas as pd

from config import LOG_FILENAME, SUMMARY_FILENAME
from models.schemas import (
    DomainConfig,
    DomainOutcomeSchema,
    ProcessingLogEntry,
    RunCounts,
    RunSummaryResponse,
)
from services.errors import (
    AlreadyRunning,
    DomainDataMissing,
    DomainProcessingError,
    MissingColumnsError,
)
from services.scoring.processor import DomainProcessor, DomainResult, select_domain_rows

logger = logging.getLogger(__name__)

# Domain states
PENDING = "pending"
DATA_CHECK = "data_check"
PROCESSING = "processing"

# Terminal statuses (also the log vocabulary)
SUCCESS = "success"
SKIPPED = "skipped"
ERROR = "error"


# ──────────────────────────────────────────────────────────────
# Run guard
# ──────────────────────────────────────────────────────────────

class FileRunLock:
    """Cross-process lock: a file created with O_CREAT | O_EXCL.

    Exposes the acquire/release subset of threading.Lock that RunState uses.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._held = False

    def acquire(self, blocking: bool = False) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            if not self._is_stale():
                return False
            logger.warning("Removing stale run lock %s", self.path)
            self.path.unlink(missing_ok=True)
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                return False
        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))
        self._held = True
        return True

    def _is_stale(self) -> bool:
        """True when the lock names a process that no longer exists.

        An unreadable or half-written lock is treated as held.
        """
        try:
            pid = int(self.path.read_text().strip())
        except (OSError, ValueError):
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        except PermissionError:
            return False
        return False

    def release(self) -> None:
        if self._held:
            self._held = False
            self.path.unlink(missing_ok=True)


class RunState:
    """Re-entrancy token for a batch run.

    Wraps an injected lock (threading.Lock by default, FileRunLock for the
    CLI). acquire() never blocks: a held lock means another run is active.
    """

    def __init__(self, lock=None):
        self._lock = lock if lock is not None else threading.Lock()
        self.active = False

    def acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            raise AlreadyRunning("A batch run is already in progress")
        self.active = True

    def release(self) -> None:
        if self.active:
            self.active = False
            self._lock.release()

    @contextmanager
    def hold(self):
        self.acquire()
        try:
            yield self
        finally:
            self.release()


# ──────────────────────────────────────────────────────────────
# Results
# ──────────────────────────────────────────────────────────────

@dataclass
class DomainOutcome:
    domain: DomainConfig
    status: str
    message: str
    result: Optional[DomainResult] = None
    error: Optional[Exception] = None

    def to_schema(self) -> DomainOutcomeSchema:
        res = self.result
        return DomainOutcomeSchema(
            domain=self.domain.key,
            phenotype=self.domain.phenotype,
            status=self.status,
            message=self.message,
            n_rows=res.n_rows if res else 0,
            unresolved=[list(k) for k in res.unresolved] if res else [],
            variant=res.variant if res else None,
            footnotes=res.footnotes if res else [],
            subdomain_summary=res.subdomain_summary if res else [],
        )


@dataclass
class RunSummary:
    started_at: datetime
    finished_at: datetime
    processed: dict[str, DomainOutcome] = field(default_factory=dict)
    log: list[ProcessingLogEntry] = field(default_factory=list)
    counts: RunCounts = field(default_factory=RunCounts)
    duplicates: list[str] = field(default_factory=list)

    def to_response(self) -> RunSummaryResponse:
        return RunSummaryResponse(
            started_at=self.started_at,
            finished_at=self.finished_at,
            counts=self.counts,
            duplicates=list(self.duplicates),
            domains=[o.to_schema() for o in self.processed.values()],
        )


def count_statuses(processed: dict[str, DomainOutcome]) -> RunCounts:
    statuses = [o.status for o in processed.values()]
    return RunCounts(
        success=statuses.count(SUCCESS),
        skipped=statuses.count(SKIPPED),
        errors=statuses.count(ERROR),
    )


# ──────────────────────────────────────────────────────────────
# Orchestrator
# ──────────────────────────────────────────────────────────────

class BatchOrchestrator:
    def __init__(
        self,
        processor: Optional[DomainProcessor] = None,
        run_state: Optional[RunState] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.processor = processor if processor is not None else DomainProcessor()
        self.run_state = run_state if run_state is not None else RunState()
        self._clock = clock or datetime.now

    def run(self, registry: list[DomainConfig], datasets: dict[str, pd.DataFrame]) -> RunSummary:
        """Process every registry domain once, in registry order.

        Raises AlreadyRunning if this orchestrator's RunState is held.
        """
        with self.run_state.hold():
            return self._run(registry, datasets)

    def _run(self, registry, datasets) -> RunSummary:
        started = self._clock()
        processed: dict[str, DomainOutcome] = {}
        log: list[ProcessingLogEntry] = []
        duplicates: list[str] = []

        for domain in registry:
            if domain.key in processed:
                logger.warning("Skipping duplicate registry entry for domain %s", domain.key)
                duplicates.append(domain.key)
                continue

            outcome = self._process_domain(domain, datasets)
            processed[domain.key] = outcome
            log.append(ProcessingLogEntry(
                domain=domain.key,
                status=outcome.status,
                timestamp=self._clock(),
                message=outcome.message,
            ))

        counts = count_statuses(processed)
        logger.info(
            "Batch complete: %d success, %d skipped, %d errors",
            counts.success, counts.skipped, counts.errors,
        )
        return RunSummary(
            started_at=started,
            finished_at=self._clock(),
            processed=processed,
            log=log,
            counts=counts,
            duplicates=duplicates,
        )

    def _process_domain(self, domain: DomainConfig, datasets) -> DomainOutcome:
        # DATA_CHECK
        try:
            rows = self.eligible_rows(domain, datasets)
        except DomainDataMissing as e:
            logger.info("Skipping %s: %s", domain.key, e)
            return DomainOutcome(domain, SKIPPED, str(e))
        except MissingColumnsError as e:
            err = DomainProcessingError(domain.key, e)
            logger.error("Domain %s failed schema validation: %s", domain.key, e)
            return DomainOutcome(domain, ERROR, str(err), error=err)
        except Exception as e:
            err = DomainProcessingError(domain.key, e)
            logger.exception("Domain %s failed while selecting rows", domain.key)
            return DomainOutcome(domain, ERROR, str(err), error=err)

        # PROCESSING
        try:
            result = self.processor.process(domain, rows)
        except Exception as e:
            err = DomainProcessingError(domain.key, e)
            logger.exception("Domain %s failed", domain.key)
            return DomainOutcome(domain, ERROR, str(err), error=err)

        message = f"Processed {result.n_rows} rows"
        if result.unresolved:
            message += f" ({len(result.unresolved)} unresolved lookups)"
        return DomainOutcome(domain, SUCCESS, message, result=result)

    @staticmethod
    def eligible_rows(domain: DomainConfig, datasets) -> pd.DataFrame:
        dataset = datasets.get(domain.data_source)
        if dataset is None:
            raise DomainDataMissing(f"No data: {domain.data_source} dataset not loaded")
        rows = select_domain_rows(dataset, domain.display_names)
        if rows.empty:
            raise DomainDataMissing(f"No data for {', '.join(domain.display_names)}")
        return rows


# ──────────────────────────────────────────────────────────────
# Output
# ──────────────────────────────────────────────────────────────

def _sanitize(obj):
    """Replace NaN/Inf with None, convert numpy types to Python types."""
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.bool_,)):
        return bool(obj)
    if isinstance(obj, (float, np.floating)):
        val = float(obj)
        return None if (math.isnan(val) or math.isinf(val)) else val
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(v) for v in obj]
    return obj


def log_records(log: list[ProcessingLogEntry]) -> list[dict]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in log]


def write_processing_log(log: list[ProcessingLogEntry], out_dir: Path) -> Path:
    """Write domain, status, time, message rows to batch_processing_log.csv."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / LOG_FILENAME
    df = pd.DataFrame(log_records(log), columns=["domain", "status", "time", "message"])
    df.to_csv(path, index=False)
    return path


def write_domain_results(summary: RunSummary, out_dir: Path) -> list[Path]:
    """One CSV per successful domain ({sequence}_{phenotype}.csv) plus run_summary.json."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for outcome in summary.processed.values():
        if outcome.status != SUCCESS or outcome.result is None:
            continue
        path = out_dir / f"{outcome.domain.output_stem}.csv"
        outcome.result.table.to_csv(path, index=False)
        written.append(path)

    path = out_dir / SUMMARY_FILENAME
    with open(path, "w") as f:
        json.dump(_sanitize(summary.to_response().model_dump(mode="json")), f, indent=2)
    written.append(path)
    return written
