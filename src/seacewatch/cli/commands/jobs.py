"""
Job commands for inspecting extraction jobs.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from seacewatch.cli.context import load_config_or_exit, prepare_runtime

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect extraction jobs",
    no_args_is_help=True,
)

STATUS_STYLES = {
    "pending": "dim",
    "running": "cyan",
    "completed": "green",
    "failed": "red",
}


def _orchestrator(config_path: Path | None):
    from seacewatch.core.orchestrator import JobOrchestrator

    config = load_config_or_exit(config_path)
    prepare_runtime(config)
    return JobOrchestrator(config)


@app.command("list")
def list_jobs(
    status: Optional[str] = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by status (pending, running, completed, failed)",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum jobs to show",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List recent jobs, newest first."""
    from seacewatch.core.config import JobStatus

    if status and status not in {s.value for s in JobStatus}:
        err_console.print(f"[red]Unknown status:[/red] {status}")
        raise typer.Exit(1)

    jobs = _orchestrator(config_path).list_jobs(status=status, limit=limit)
    if not jobs:
        console.print("[dim]No jobs yet. Start one with:[/dim] seacewatch scrape run")
        return

    table = Table(title="Extraction Jobs", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("New", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Created", justify="right")

    for job in jobs:
        style = STATUS_STYLES.get(job["status"], "default")
        counters = job["counters"]
        duration = f"{job['duration_ms'] / 1000:.1f}s" if job["duration_ms"] is not None else "-"
        table.add_row(
            job["id"][:8],
            f"[{style}]{job['status']}[/{style}]",
            str(counters["inserted"]),
            str(counters["updated"]),
            str(counters["errored"]),
            duration,
            (job["created_at"] or "")[:16].replace("T", " "),
        )

    console.print(table)


@app.command("show")
def show_job(
    job_id: str = typer.Argument(..., help="Job id"),
    as_json: bool = typer.Option(False, "--json", help="Print raw details as JSON"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show everything recorded about a job."""
    from seacewatch.core.orchestrator import JobNotFound

    orchestrator = _orchestrator(config_path)
    try:
        details = orchestrator.get_details(job_id)
    except JobNotFound:
        err_console.print(f"[red]Job not found:[/red] {job_id}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(details, default=str))
        return

    style = STATUS_STYLES.get(details["status"], "default")
    counters = details["counters"]
    lines = [
        f"Status: [{style}]{details['status']}[/{style}]",
        f"Message: {details['message'] or '-'}",
        f"Pages: {details['pages_processed']}  Rows seen: {details['rows_seen']}",
        f"New: {counters['inserted']}  Updated: {counters['updated']}  "
        f"Errors: {counters['errored']}  Skipped: {details['skipped']}",
        f"Started: {details['started_at'] or '-'}  Finished: {details['finished_at'] or '-'}",
    ]
    console.print(Panel.fit("\n".join(lines), title=f"[bold]Job {details['id']}[/bold]"))

    if details["error_details"]:
        errors = Table(title="Errors", show_header=True, header_style="bold red")
        errors.add_column("Process")
        errors.add_column("Stage")
        errors.add_column("Error")
        for err in details["error_details"]:
            errors.add_row(err.get("process_id") or "-", err.get("stage") or "-", err.get("error") or "")
        console.print(errors)

    if details["inserted_ids"]:
        console.print(f"[green]New ({len(details['inserted_ids'])}):[/green] {', '.join(details['inserted_ids'][:20])}")
    if details["updated_ids"]:
        console.print(f"[cyan]Updated ({len(details['updated_ids'])}):[/cyan] {', '.join(details['updated_ids'][:20])}")
    for warning in details["warnings"]:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if details["error_traceback"]:
        console.print(f"[dim]{details['error_traceback']}[/dim]")


@app.command("stats")
def job_stats(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show aggregate job statistics."""
    stats = _orchestrator(config_path).stats()

    table = Table(title="Job Statistics", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total jobs", str(stats["total"]))
    for status, count in stats["by_status"].items():
        table.add_row(f"  {status}", str(count))
    table.add_row("Processes inserted", str(stats["inserted"]))
    table.add_row("Processes updated", str(stats["updated"]))
    table.add_row("Persistence errors", str(stats["errored"]))
    avg = stats["avg_completed_duration_ms"]
    table.add_row("Avg completed duration", f"{avg / 1000:.1f}s" if avg is not None else "-")

    console.print(table)
