"""Presentation projections of the pipeline: chart series, target gap,
staleness flags and table rows. Display rounding happens here, never in
``fundraise.pipeline``."""
from __future__ import annotations

import math
from datetime import date

from fundraise.pipeline import active_records, aggregate, sort_records
from fundraise.schemas import (
    BlockerImpact,
    ChartPoint,
    DashboardOut,
    GapOut,
    Investor,
    PipelineStats,
    SortConfig,
    Status,
    TableRow,
    Targets,
)

STALE_AFTER_DAYS = 14


def _fmt(amount: float) -> str:
    return f"{amount:g}"


def composition(stats: PipelineStats) -> list[ChartPoint]:
    return [
        ChartPoint(name="Verbal", value=stats.total_verbal),
        ChartPoint(name="High Interest", value=stats.total_high_interest),
        ChartPoint(name="In Progress", value=stats.total_in_progress),
    ]


def progress_vs_targets(stats: PipelineStats) -> list[ChartPoint]:
    return [
        ChartPoint(name="Target (1st)", value=stats.target_primary),
        ChartPoint(name="Max Potential", value=stats.max_potential),
        ChartPoint(name="Weighted Exp.", value=math.floor(stats.weighted_total + 0.5)),
        ChartPoint(name="Verbal Commit", value=stats.total_verbal),
    ]


def gap_to_target(stats: PipelineStats) -> GapOut:
    target = stats.target_primary
    pct = min(100.0, stats.total_verbal / target * 100) if target > 0 else 100.0
    return GapOut(
        remaining=max(0.0, target - stats.total_verbal),
        progress_pct=round(pct, 1),
        target=target,
    )


def days_since_update(record: Investor, today: date) -> int:
    return (today - record.last_update).days


def is_stale(record: Investor, today: date, threshold: int = STALE_AFTER_DAYS) -> bool:
    return record.status != Status.DROPPED.value and days_since_update(record, today) > threshold


def amount_label(record: Investor) -> str:
    label = f"{_fmt(record.amount)}억" if record.amount > 0 else "TBD"
    if record.max_amount:
        label += f" (Max {_fmt(record.max_amount)})"
    return label


def blocker_impact(records: list[Investor]) -> list[BlockerImpact]:
    """Active blockers grouped by what they wait on, largest exposure first."""
    groups: dict[str, BlockerImpact] = {}
    for r in active_records(records):
        if not r.is_blocker:
            continue
        key = r.dependency or r.notes or "Unspecified"
        group = groups.setdefault(key, BlockerImpact(dependency=key, total_amount=0.0, investors=[]))
        group.total_amount += r.amount
        group.investors.append(r.name)
    return sorted(groups.values(), key=lambda g: g.total_amount, reverse=True)


def table_rows(
    records: list[Investor], today: date, stale_after: int = STALE_AFTER_DAYS,
) -> list[TableRow]:
    return [
        TableRow(
            **r.model_dump(),
            amount_label=amount_label(r),
            days_since_update=days_since_update(r, today),
            stale=is_stale(r, today, stale_after),
        )
        for r in records
    ]


def build_dashboard(
    records: list[Investor],
    targets: Targets,
    sort: SortConfig | None,
    today: date,
    stale_after: int = STALE_AFTER_DAYS,
) -> DashboardOut:
    stats = aggregate(records, targets)
    return DashboardOut(
        stats=stats,
        composition=composition(stats),
        progress=progress_vs_targets(stats),
        gap=gap_to_target(stats),
        blockers=blocker_impact(records),
        rows=table_rows(sort_records(records, sort), today, stale_after),
        sort=sort,
    )
