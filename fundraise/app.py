from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query

from fundraise import services
from fundraise.auth import require_password
from fundraise.pipeline import parse_sort
from fundraise.schemas import DashboardOut, Investor, PipelineStats, ReportOut
from fundraise.store import InvestorStore

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services.get_store()
    yield
    services.shutdown_store()


app = FastAPI(
    title="Fundraise",
    version="0.1.0",
    description=(
        "Fundraising pipeline tracker. Keeps investor records, computes pipeline "
        "statistics and table order, and drafts LLM status reports. "
        "Send X-Pipeline-Password when a password is configured."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Investors", "description": "List, create, update, and delete investors."},
        {"name": "Stats", "description": "Pipeline statistics and dashboard projections."},
        {"name": "Report", "description": "LLM-written pipeline update. Requires an LLM API key."},
        {"name": "Admin", "description": "Administrative operations."},
    ],
)

api = APIRouter(prefix="/api", dependencies=[Depends(require_password)])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def store_dep() -> InvestorStore:
    return services.get_store()


# ---------------------------------------------------------------------------
# Routes: Investors
# ---------------------------------------------------------------------------


@api.get("/investors", response_model=list[Investor],
         tags=["Investors"], summary="List investors, optionally sorted by a column")
async def list_investors(
    sort_by: str | None = Query(None, description="Column: name, amount, status, probability, lead, lastUpdate, notes, ..."),
    sort_dir: str = Query("asc", description="asc or desc"),
    store: InvestorStore = Depends(store_dep),
):
    return services.list_investors(store, parse_sort(sort_by, sort_dir))


@api.post("/investors", response_model=list[Investor],
          tags=["Investors"], summary="Create or update an investor (upsert by id); returns all investors")
async def upsert_investor(body: Investor, store: InvestorStore = Depends(store_dep)):
    try:
        return services.save_investor(store, body)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc


@api.delete("/investors/{investor_id}", response_model=list[Investor],
            tags=["Investors"], summary="Delete an investor; returns the remaining investors")
async def delete_investor(investor_id: str, store: InvestorStore = Depends(store_dep)):
    return services.delete_investor(store, investor_id)


@api.delete("/investor", response_model=list[Investor],
            tags=["Investors"], summary="Delete an investor by ?id= query parameter")
async def delete_investor_by_query(
    id: str | None = Query(None), store: InvestorStore = Depends(store_dep),
):
    if not id:
        raise HTTPException(400, "ID is required")
    return services.delete_investor(store, id)


# ---------------------------------------------------------------------------
# Routes: Stats
# ---------------------------------------------------------------------------


@api.get("/stats", response_model=PipelineStats,
         tags=["Stats"], summary="Pipeline totals, weighted expectation, and max potential")
async def get_stats(store: InvestorStore = Depends(store_dep)):
    return services.compute_stats(store)


@api.get("/dashboard", response_model=DashboardOut,
         tags=["Stats"], summary="Stats, chart series, blockers, and sorted table rows")
async def get_dashboard(
    sort_by: str | None = Query(None),
    sort_dir: str = Query("asc"),
    store: InvestorStore = Depends(store_dep),
):
    return services.dashboard(store, parse_sort(sort_by, sort_dir))


# ---------------------------------------------------------------------------
# Routes: Report
# ---------------------------------------------------------------------------


@api.post("/report", response_model=ReportOut,
          tags=["Report"], summary="Generate a strategic pipeline update via LLM")
async def create_report(store: InvestorStore = Depends(store_dep)):
    try:
        text = await services.run_report(store)
    except Exception as exc:
        log.warning("Report generation failed: %s", exc)
        raise HTTPException(502, f"Report generation failed: {exc}") from exc
    return {"report": text}


# ---------------------------------------------------------------------------
# Routes: Admin
# ---------------------------------------------------------------------------


@api.post("/setup", tags=["Admin"], summary="Seed the default pipeline into an empty store")
async def setup(store: InvestorStore = Depends(store_dep)):
    return {"seeded": services.seed_store(store)}


app.include_router(api)


@app.get("/health", tags=["Admin"])
async def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    uvicorn.run("fundraise.app:app", host="127.0.0.1", port=8001, reload=True)


if __name__ == "__main__":
    main()
