"""API router for the domain registry and batch runs."""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
from fastapi import APIRouter, HTTPException

from generator.batch import BatchOrchestrator, RunSummary, log_records
from models.schemas import DomainConfig, DomainListItem, RunSummaryResponse
from services.errors import AlreadyRunning

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["batch"])

# Module-level state, set at startup
_registry: list[DomainConfig] = []
_datasets: dict[str, pd.DataFrame] = {}
_orchestrator: Optional[BatchOrchestrator] = None
_latest: Optional[RunSummary] = None


def init_batch(
    registry: list[DomainConfig],
    datasets: dict[str, pd.DataFrame],
    orchestrator: Optional[BatchOrchestrator] = None,
):
    global _registry, _datasets, _orchestrator, _latest
    _registry = list(registry)
    _datasets = dict(datasets)
    _orchestrator = orchestrator if orchestrator is not None else BatchOrchestrator()
    _latest = None


@router.get("/domains", response_model=list[DomainListItem])
def list_domains():
    """Registered domains in processing order."""
    return [
        DomainListItem(
            key=d.key,
            display_names=list(d.display_names),
            phenotype=d.phenotype,
            data_source=d.data_source,
            sequence_number=d.sequence_number,
        )
        for d in _registry
    ]


@router.post("/runs", response_model=RunSummaryResponse)
def start_run():
    """Run the batch synchronously and return its summary."""
    global _latest
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail="Batch service not initialised")
    try:
        _latest = _orchestrator.run(_registry, _datasets)
    except AlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("Batch run finished: %s", _latest.counts.model_dump())
    return _latest.to_response()


@router.get("/runs/latest", response_model=RunSummaryResponse)
def get_latest_run():
    if _latest is None:
        raise HTTPException(status_code=404, detail="No batch run yet")
    return _latest.to_response()


@router.get("/runs/latest/log")
def get_latest_log():
    """Processing log of the latest run (domain, status, time, message)."""
    if _latest is None:
        raise HTTPException(status_code=404, detail="No batch run yet")
    return log_records(_latest.log)
