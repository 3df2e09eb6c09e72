from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import typer
from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fundraise import services
from fundraise.config import get_settings
from fundraise.dashboard import amount_label, is_stale
from fundraise.pipeline import parse_sort
from fundraise.reporter import LLMCallError
from fundraise.schemas import Investor
from fundraise.store import dump_investors

app = typer.Typer(help="Fundraising pipeline tracker")
console = Console()

_STATUS_STYLE = {
    "Verbal": "green",
    "HighInterest": "blue",
    "InProgress": "yellow",
    "Dropped": "dim",
}


def _configure_logging(*, verbose: int, json_output: bool) -> None:
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers: list[logging.Handler]
    if json_output:
        handlers = [logging.StreamHandler()]
        fmt = "%(levelname)s: %(message)s"
    else:
        handlers = [RichHandler(console=console, show_time=False, show_path=False, markup=True)]
        fmt = "%(message)s"

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)


def _wants_json(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("json_output"))


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def app_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON for scripting."),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity."),
) -> None:
    ctx.obj = {"json_output": json_output, "verbose": verbose}
    _configure_logging(verbose=verbose, json_output=json_output)
    ctx.call_on_close(services.shutdown_store)


def _render_investors(records: list[Investor]) -> None:
    today = get_settings().today()
    stale_after = get_settings().stale_after_days
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Investor", style="bold")
    table.add_column("Amount", justify="right")
    table.add_column("Status")
    table.add_column("Prob.", justify="right")
    table.add_column("Lead")
    table.add_column("Last Update")
    table.add_column("Notes / Issue")
    for r in records:
        style = _STATUS_STYLE.get(r.status, "")
        updated = r.last_update.isoformat()
        if is_stale(r, today, stale_after):
            updated = f"[red]{updated} (update req)[/red]"
        issue = escape(r.dependency or r.notes)
        if r.is_blocker:
            issue = f"[bold orange3]\\[BLOCKER][/bold orange3] {issue}"
        table.add_row(
            escape(r.name), amount_label(r),
            f"[{style}]{escape(r.status)}[/{style}]" if style else escape(r.status),
            f"{r.probability:.0%}", escape(r.lead), updated, issue,
        )
    console.print(Panel(table, title="Pipeline Details", border_style="cyan"))


@app.command("list")
def list_command(
    ctx: typer.Context,
    sort_by: str | None = typer.Option(None, "--sort-by", help="Column to sort by (status, notes, amount, ...)."),
    desc: bool = typer.Option(False, "--desc", help="Sort descending."),
) -> None:
    records = services.list_investors(
        services.get_store(), parse_sort(sort_by, "desc" if desc else "asc"),
    )
    if _wants_json(ctx):
        _echo_json(dump_investors(records))
        return
    _render_investors(records)


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    stats = services.compute_stats(services.get_store())
    if _wants_json(ctx):
        _echo_json(stats.model_dump(by_alias=True))
        return
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("억 KRW", justify="right")
    table.add_row("1st target", f"{stats.target_primary:g}")
    table.add_row("Final target", f"{stats.target_final:g}")
    table.add_row("Verbal commits", f"{stats.total_verbal:g}")
    table.add_row("High interest", f"{stats.total_high_interest:g}")
    table.add_row("In progress", f"{stats.total_in_progress:g}")
    table.add_row("Weighted pipeline", f"{stats.weighted_total:.1f}")
    table.add_row("Max potential", f"{stats.max_potential:g}")
    console.print(Panel(table, title="Pipeline Summary", border_style="cyan"))


@app.command("seed")
def seed_command(ctx: typer.Context) -> None:
    added = services.seed_store(services.get_store())
    if _wants_json(ctx):
        _echo_json({"seeded": added})
        return
    console.print(f"Seeded [bold]{added}[/bold] investors" if added else "Store already has investors")


@app.command("report")
def report_command(ctx: typer.Context) -> None:
    try:
        text = asyncio.run(services.run_report(services.get_store()))
    except LLMCallError as exc:
        if _wants_json(ctx):
            _echo_json({"error": str(exc), "retryable": exc.retryable})
        else:
            console.print(f"[red]Report failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    if _wants_json(ctx):
        _echo_json({"report": text})
        return
    console.print(Panel(Markdown(text), title="AI Pipeline Report", border_style="green"))


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8001, help="Port."),
    reload: bool = typer.Option(False, help="Auto-reload on code changes."),
) -> None:
    import uvicorn
    uvicorn.run("fundraise.app:app", host=host, port=port, reload=reload)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
