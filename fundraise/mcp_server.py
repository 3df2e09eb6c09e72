from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from fundraise import services
from fundraise.pipeline import STATUS_PRIORITY, parse_sort
from fundraise.store import dump_investors

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def fundraise_lifespan(server: FastMCP) -> AsyncIterator[None]:
    services.get_store()
    yield
    services.shutdown_store()


mcp = FastMCP(
    "Fundraise",
    instructions=(
        "Fundraise tracks the investor pipeline of a funding round. "
        "Start with get_stats() for totals against the targets, then "
        "list_investors() to browse, and upsert_investor() to record news."
    ),
    lifespan=fundraise_lifespan,
    json_response=True,
)


def _llm_error(exc: Exception) -> dict:
    return {
        "error": f"Report failed: {exc}",
        "error_code": "LLM_ERROR",
        "retryable": getattr(exc, "retryable", False),
    }


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("fundraise://overview")
def fundraise_overview() -> str:
    """Overview of Fundraise: data model, statuses, and derived statistics."""
    return json.dumps({
        "system": "Fundraise: investor pipeline tracker",
        "unit": "Amounts are in 억 KRW. An amount of 0 means TBD.",
        "statuses": list(STATUS_PRIORITY),
        "stats": {
            "totalVerbal": "Sum of amounts with status Verbal.",
            "totalHighInterest": "Sum of amounts with status HighInterest.",
            "totalInProgress": "Sum of amounts with status InProgress.",
            "weightedTotal": "Sum of amount x probability over non-dropped investors.",
            "maxPotential": "Sum of maxAmount (or amount) over non-dropped investors.",
        },
        "blockers": "isBlocker marks an investor gated on an external dependency.",
    }, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def list_investors(sort_by: str | None = None, sort_dir: str = "asc") -> list[dict]:
    """List investors in the pipeline.

    Args:
        sort_by: Optional column: name, amount, status, probability, lead,
                 lastUpdate, or notes (blockers first when ascending).
        sort_dir: asc or desc.
    """
    store = services.get_store()
    return dump_investors(services.list_investors(store, parse_sort(sort_by, sort_dir)))


@mcp.tool()
def get_stats() -> dict:
    """Pipeline totals against the primary and final targets."""
    return services.compute_stats(services.get_store()).model_dump(by_alias=True)


@mcp.tool()
def upsert_investor(
    name: str,
    id: str | None = None,
    amount: float = 0.0,
    max_amount: float | None = None,
    status: str = "InProgress",
    probability: float = 0.5,
    lead: str = "",
    contact: str | None = None,
    dependency: str | None = None,
    is_blocker: bool = False,
    last_update: str | None = None,
    notes: str = "",
) -> dict | list[dict]:
    """Create or update an investor (matched by id). Returns all investors."""
    data = {
        "name": name, "amount": amount, "max_amount": max_amount, "status": status,
        "probability": probability, "lead": lead, "contact": contact,
        "dependency": dependency, "is_blocker": is_blocker, "notes": notes,
    }
    if id:
        data["id"] = id
    if last_update:
        data["last_update"] = last_update
    try:
        return dump_investors(services.save_investor(services.get_store(), data))
    except ValueError as exc:
        return {"error": str(exc)}


@mcp.tool()
def delete_investor(investor_id: str) -> list[dict]:
    """Delete an investor by id. Returns the remaining investors."""
    return dump_investors(services.delete_investor(services.get_store(), investor_id))


@mcp.tool()
async def generate_report() -> dict:
    """Draft a strategic pipeline update with the configured LLM."""
    try:
        return {"report": await services.run_report(services.get_store())}
    except Exception as exc:
        log.warning("Report tool failed: %s", exc)
        return _llm_error(exc)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the Fundraise MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
