"""
Scrape commands for running SEACE extraction jobs.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from seacewatch.cli.context import load_config_or_exit, prepare_runtime

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run scrape jobs",
    no_args_is_help=True,
)


@app.command("run")
def run_scrape(
    keywords: Optional[List[str]] = typer.Option(
        None,
        "--keyword",
        "-k",
        help="Description keyword (repeatable, default: software)",
    ),
    contract_object: str = typer.Option(
        "servicio",
        "--object",
        "-o",
        help="Contract object: bien, servicio, consultoria, obra",
    ),
    year: Optional[int] = typer.Option(
        None,
        "--year",
        "-y",
        help="Convocation year (default: current year)",
    ),
    date_from: Optional[str] = typer.Option(
        None,
        "--from",
        help="Publication date from (YYYY-MM-DD or DD/MM/YYYY)",
    ),
    date_to: Optional[str] = typer.Option(
        None,
        "--to",
        help="Publication date to (YYYY-MM-DD or DD/MM/YYYY)",
    ),
    entity: Optional[str] = typer.Option(
        None,
        "--entity",
        "-e",
        help="Contracting entity filter",
    ),
    process_type: Optional[str] = typer.Option(
        None,
        "--process-type",
        help="Selection procedure filter",
    ),
    max_processes: int = typer.Option(
        100,
        "--max",
        "-n",
        help="Maximum new processes to insert (0 = no limit)",
    ),
    headed: bool = typer.Option(
        False,
        "--headed",
        help="Show the browser window",
    ),
    no_export: bool = typer.Option(
        False,
        "--no-export",
        help="Skip txt/json/csv side files",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Debug logging",
    ),
) -> None:
    """Run one extraction job and follow its progress.

    Examples:
        seacewatch scrape run -k software -k sistema --object servicio
        seacewatch scrape run --year 2025 --from 2025-03-01 --to 2025-03-31 --max 0
        seacewatch scrape run -o bien --entity "MUNICIPALIDAD" --headed
    """
    from seacewatch.core.config import ExtractionParams

    config = load_config_or_exit(config_path)
    if headed:
        config.browser.headless = False
    if no_export:
        config.export.enabled = False

    raw: dict[str, Any] = {
        "objetoContratacion": contract_object,
        "maxProcesses": max_processes or None,
        "entidad": entity,
        "tipoProceso": process_type,
        "fechaDesde": date_from,
        "fechaHasta": date_to,
    }
    if keywords:
        raw["keywords"] = keywords
    if year is not None:
        raw["anio"] = year

    try:
        params = ExtractionParams.model_validate(raw)
    except ValidationError as e:
        err_console.print("[red]Invalid parameters:[/red]")
        for error in e.errors():
            loc = ".".join(str(p) for p in error["loc"]) or "params"
            err_console.print(f"  [dim]{loc}:[/dim] {error['msg']}")
        raise typer.Exit(1)

    prepare_runtime(config, verbose=verbose)

    console.print()
    console.print(
        f"[bold]Searching SEACE:[/bold] {params.contract_object.value} {params.year}, "
        f"keywords '{params.keyword_text}', "
        f"{params.date_from:%d/%m/%Y} - {params.date_to:%d/%m/%Y}"
    )
    console.print()

    status = asyncio.run(_submit_and_follow(config, params))

    console.print()
    _show_result(status)
    if status["status"] != "completed":
        raise typer.Exit(1)


async def _submit_and_follow(config, params) -> dict[str, Any]:
    """Submit the job, then poll its progress until it finishes."""
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    from seacewatch.core.orchestrator import JobOrchestrator

    orchestrator = JobOrchestrator(config)
    job_id = await orchestrator.submit(params)
    waiter = asyncio.create_task(orchestrator.wait(job_id))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"[cyan]Job {job_id[:8]} starting...[/cyan]", total=None)

        while not waiter.done():
            await asyncio.wait({waiter}, timeout=1.0)
            p = orchestrator.get_progress(job_id)
            progress.update(
                task,
                description=(
                    f"[cyan]Job {job_id[:8]}[/cyan] {p['status']}: "
                    f"page {p['pages_processed']}, "
                    f"{p['inserted']} new, {p['updated']} updated, {p['errored']} errors"
                ),
            )

    return orchestrator.get_details(job_id)


def _show_result(details: dict[str, Any]) -> None:
    status = details["status"]
    style = "green" if status == "completed" else "red"

    table = Table(title=f"Job {details['id']}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    counters = details["counters"]
    table.add_row("Status", f"[{style}]{status}[/{style}]")
    table.add_row("Pages", str(details["pages_processed"]))
    table.add_row("Rows seen", str(details["rows_seen"]))
    table.add_row("Inserted", str(counters["inserted"]))
    table.add_row("Updated", str(counters["updated"]))
    table.add_row("Errors", str(counters["errored"]))
    table.add_row("Skipped (cap)", str(details["skipped"]))
    if details["duration_ms"] is not None:
        table.add_row("Duration", f"{details['duration_ms'] / 1000:.1f}s")
    table.add_row("Message", details["message"] or "")

    console.print(table)

    for path in details["export_paths"]:
        console.print(f"[dim]Exported:[/dim] {path}")
    for warning in details["warnings"]:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
