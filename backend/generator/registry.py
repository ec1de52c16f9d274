"""Domain registry: the ordered list of domains a batch run visits."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from config import REGISTRY_PATH
from models.schemas import DomainConfig
from services.errors import RegistryUnavailable

logger = logging.getLogger(__name__)


def parse_registry(data) -> list[DomainConfig]:
    """Build DomainConfig entries from parsed YAML, keeping file order.

    Duplicate keys are kept here; the orchestrator skips repeats at run time.
    """
    if not isinstance(data, dict) or not isinstance(data.get("domains"), list):
        raise RegistryUnavailable("Registry must be a mapping with a 'domains' list")
    registry: list[DomainConfig] = []
    for i, entry in enumerate(data["domains"]):
        try:
            registry.append(DomainConfig(**entry))
        except (TypeError, ValidationError) as e:
            raise RegistryUnavailable(f"Invalid registry entry #{i + 1}: {e}") from e
    return registry


def load_registry(path: Path = REGISTRY_PATH) -> list[DomainConfig]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise RegistryUnavailable(f"Cannot read domain registry {path}: {e}") from e
    registry = parse_registry(data)
    logger.info(f"Loaded {len(registry)} domains from {path}")
    return registry


# Global registry instance
_registry: Optional[list[DomainConfig]] = None


def get_domain_registry() -> list[DomainConfig]:
    """Shared registry loaded from REGISTRY_PATH on first use."""
    global _registry
    if _registry is None:
        _registry = load_registry()
    return _registry


def find_domain(registry: list[DomainConfig], key: str) -> DomainConfig | None:
    for domain in registry:
        if domain.key == key:
            return domain
    return None
