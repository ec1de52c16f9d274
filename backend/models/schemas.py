from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DomainConfig(BaseModel):
    """One registry entry: a cognitive/behavioral domain to process."""

    model_config = ConfigDict(frozen=True)

    key: str
    display_name: str | list[str]
    phenotype: str
    data_source: str
    sequence_number: str

    @field_validator("sequence_number", mode="before")
    @classmethod
    def _two_digits(cls, v):
        if isinstance(v, int):
            v = f"{v:02d}"
        v = str(v)
        if len(v) != 2 or not v.isdigit():
            raise ValueError(f"sequence_number must be a two-digit string, got {v!r}")
        return v

    @field_validator("display_name")
    @classmethod
    def _non_empty(cls, v):
        if isinstance(v, list) and not v:
            raise ValueError("display_name list must not be empty")
        return v

    @property
    def display_names(self) -> tuple[str, ...]:
        if isinstance(self.display_name, str):
            return (self.display_name,)
        return tuple(self.display_name)

    @property
    def output_stem(self) -> str:
        return f"{self.sequence_number}_{self.phenotype}"


class ProcessingLogEntry(BaseModel):
    domain: str
    status: Literal["success", "skipped", "error"]
    timestamp: datetime = Field(serialization_alias="time")
    message: str


class RunCounts(BaseModel):
    success: int = 0
    skipped: int = 0
    errors: int = 0


class DomainOutcomeSchema(BaseModel):
    domain: str
    phenotype: str
    status: Literal["success", "skipped", "error"]
    message: str
    n_rows: int = 0
    unresolved: list[list[str | None]] = []
    variant: str | None = None
    footnotes: list[str] = []
    subdomain_summary: list[dict] = []


class RunSummaryResponse(BaseModel):
    started_at: datetime
    finished_at: datetime
    counts: RunCounts
    duplicates: list[str] = []
    domains: list[DomainOutcomeSchema] = []


class DomainListItem(BaseModel):
    key: str
    display_names: list[str]
    phenotype: str
    data_source: str
    sequence_number: str
