import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import DATA_DIR
from generator.registry import get_domain_registry
from routers.batch import init_batch, router as batch_router
from services.datasets import load_datasets

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: load registry and patient data
    print("Loading domain registry...")
    registry = get_domain_registry()
    print(f"Found {len(registry)} domains: {[d.key for d in registry]}")
    datasets = load_datasets(DATA_DIR) if DATA_DIR.is_dir() else {}
    if not datasets:
        logger.warning("No patient data found in %s", DATA_DIR)
    init_batch(registry, datasets)
    print(f"Patient data loaded: {sorted(datasets)}")
    yield


app = FastAPI(title="Neuropsych Scoring Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(batch_router)
