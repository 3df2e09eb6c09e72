"""Pydantic record and response schemas for the Fundraise API."""
from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Status(str, Enum):
    VERBAL = "Verbal"
    HIGH_INTEREST = "HighInterest"
    IN_PROGRESS = "InProgress"
    DROPPED = "Dropped"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_id() -> str:
    return uuid.uuid4().hex


class Investor(_CamelModel):
    """A single investor in the pipeline. Amounts are in 억 KRW."""

    id: str = Field(default_factory=_new_id)
    name: str
    amount: float = 0.0
    max_amount: float | None = None
    # Kept as a plain string: unknown statuses must survive a round trip.
    status: str = Status.IN_PROGRESS.value
    probability: float = 0.5
    lead: str = ""
    contact: str | None = None
    dependency: str | None = None
    is_blocker: bool = False
    last_update: date = Field(default_factory=date.today)
    notes: str = ""

    @field_validator("contact", "dependency", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("is_blocker", mode="before")
    @classmethod
    def null_blocker(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("notes", mode="before")
    @classmethod
    def null_notes(cls, v: Any) -> Any:
        return "" if v is None else v


class Targets(BaseModel):
    primary: float
    final: float


class PipelineStats(_CamelModel):
    target_primary: float
    target_final: float
    total_verbal: float = 0.0
    total_high_interest: float = 0.0
    total_in_progress: float = 0.0
    weighted_total: float = 0.0
    max_potential: float = 0.0


class SortConfig(BaseModel):
    key: str
    direction: Literal["asc", "desc"] = "asc"


class ChartPoint(BaseModel):
    name: str
    value: float


class GapOut(_CamelModel):
    remaining: float
    progress_pct: float
    target: float


class BlockerImpact(_CamelModel):
    dependency: str
    total_amount: float
    investors: list[str]


class TableRow(Investor):
    """Table row: an investor plus its display-only fields."""

    amount_label: str
    days_since_update: int
    stale: bool


class DashboardOut(_CamelModel):
    stats: PipelineStats
    composition: list[ChartPoint]
    progress: list[ChartPoint]
    gap: GapOut
    blockers: list[BlockerImpact]
    rows: list[TableRow]
    sort: SortConfig | None = None


class ReportOut(BaseModel):
    report: str
