"""Shared business logic for the Fundraise API, MCP server and CLI."""
from __future__ import annotations

import logging
import threading
from typing import Any

from fundraise.config import Settings, get_settings
from fundraise.dashboard import build_dashboard
from fundraise.pipeline import aggregate, sort_records
from fundraise.reporter import LLMClient, generate_report
from fundraise.schemas import DashboardOut, Investor, PipelineStats, SortConfig
from fundraise.seed import default_investors
from fundraise.store import InvestorStore, build_store, close_store

log = logging.getLogger(__name__)

_lock = threading.Lock()
_store: InvestorStore | None = None


def get_store() -> InvestorStore:
    """Process-wide store built from settings on first use."""
    global _store
    with _lock:
        if _store is None:
            settings = get_settings()
            log.info("Using %s investor store", settings.store)
            _store = build_store(settings)
        return _store


def set_store(store: InvestorStore | None) -> None:
    global _store
    with _lock:
        _store = store


def shutdown_store() -> None:
    """Close the process-wide store and forget it."""
    global _store
    with _lock:
        store, _store = _store, None
    if store is not None:
        close_store(store)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def list_investors(store: InvestorStore, sort: SortConfig | None = None) -> list[Investor]:
    return sort_records(store.list(), sort)


def save_investor(store: InvestorStore, data: dict[str, Any] | Investor) -> list[Investor]:
    """Validate and upsert one investor; returns the refreshed collection."""
    investor = data if isinstance(data, Investor) else Investor.model_validate(data)
    if not investor.name.strip():
        raise ValueError("Investor name must not be empty")
    log.info("Saving investor %s (%s)", investor.id, investor.name)
    return store.upsert(investor)


def delete_investor(store: InvestorStore, investor_id: str) -> list[Investor]:
    log.info("Deleting investor %s", investor_id)
    return store.delete(investor_id)


def compute_stats(store: InvestorStore, settings: Settings | None = None) -> PipelineStats:
    settings = settings or get_settings()
    return aggregate(store.list(), settings.targets)


def dashboard(
    store: InvestorStore, sort: SortConfig | None = None, settings: Settings | None = None,
) -> DashboardOut:
    settings = settings or get_settings()
    return build_dashboard(
        store.list(), settings.targets, sort, settings.today(), settings.stale_after_days,
    )


def seed_store(store: InvestorStore) -> int:
    """Fill an empty store with the default pipeline. Returns records added."""
    if store.list():
        return 0
    seeded = default_investors()
    for investor in seeded:
        store.upsert(investor)
    return len(seeded)


async def run_report(
    store: InvestorStore, client: LLMClient | None = None, settings: Settings | None = None,
) -> str:
    settings = settings or get_settings()
    records = store.list()
    stats = aggregate(records, settings.targets)
    return await generate_report(records, stats, client, today=settings.today())
