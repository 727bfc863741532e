"""
SeaceWatch CLI - Main entry point.

A terminal-first extractor for the SEACE public procurement search, with
background jobs, idempotent storage and side-file exports.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from seacewatch import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows to avoid encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            try:
                stream.reconfigure(encoding="utf-8", errors="replace")
            except (AttributeError, OSError):
                pass

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="SEACE procurement process extractor and tracker",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """SeaceWatch - SEACE procurement process extractor."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, exports, jobs, scrape  # noqa: E402

app.add_typer(scrape.app, name="scrape", help="Run extraction jobs")
app.add_typer(jobs.app, name="jobs", help="Inspect extraction jobs")
app.add_typer(exports.app, name="exports", help="Browse export files")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize SeaceWatch database and configuration.

    Creates required directories, the default configuration file,
    and the database schema.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from seacewatch.cli.context import DEFAULT_CONFIG_PATH, load_config_or_exit
    from seacewatch.core.config import write_default_app_config
    from seacewatch.persistence.db import init_db

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating default configuration...", total=None)

        if not DEFAULT_CONFIG_PATH.exists() or force:
            write_default_app_config(DEFAULT_CONFIG_PATH)

        progress.update(task, description="Creating directories...")
        config = load_config_or_exit(DEFAULT_CONFIG_PATH)
        config.ensure_directories()

        progress.update(task, description="Initializing database...")
        init_db(config.database.url, pool_size=config.database.pool_size)

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - SeaceWatch initialized successfully![/bold green]\n\n"
        "Created:\n"
        f"  - [cyan]{DEFAULT_CONFIG_PATH}[/cyan] - Application configuration\n"
        f"  - [cyan]{config.data_dir}/[/cyan] - Database storage\n"
        f"  - [cyan]{config.export.directory}/[/cyan] - Export files\n\n"
        "Next steps:\n"
        "  1. Review the portal and browser settings in configs/app.yaml\n"
        "  2. Run a search: [yellow]seacewatch scrape run -k software --object servicio[/yellow]\n"
        "  3. Check results: [yellow]seacewatch jobs list[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show SeaceWatch status and statistics."""
    from rich.table import Table

    from seacewatch.cli.context import load_config_or_exit
    from seacewatch.persistence.db import get_engine, get_session
    from seacewatch.persistence.repo import JobRepository, ProcessRepository

    config = load_config_or_exit(config_path)

    db_url = config.database.url
    if db_url.startswith("sqlite:///") and not Path(db_url.replace("sqlite:///", "")).exists():
        err_console.print("[red]SeaceWatch not initialized. Run:[/red] seacewatch init")
        raise typer.Exit(1)

    get_engine(db_url, pool_size=config.database.pool_size)

    console.print()
    console.print("[bold]SeaceWatch Status[/bold]")
    console.print()

    with get_session() as session:
        process_repo = ProcessRepository(session)
        job_stats = JobRepository(session).stats()
        by_object = process_repo.count_by_contract_object()
        total = process_repo.count()

    table = Table(title="Processes", show_header=True, header_style="bold magenta")
    table.add_column("Contract object", style="cyan")
    table.add_column("Count", justify="right")
    for obj, count in sorted(by_object.items()):
        table.add_row(obj, str(count))
    table.add_row("[bold]Total[/bold]", f"[bold]{total}[/bold]")

    if total:
        console.print(table)
    else:
        console.print("[dim]No processes stored yet.[/dim]")
    console.print()

    jobs_table = Table(title="Jobs", show_header=True, header_style="bold magenta")
    jobs_table.add_column("Status", style="cyan")
    jobs_table.add_column("Count", justify="right")
    for job_status, count in job_stats["by_status"].items():
        jobs_table.add_row(job_status, str(count))
    console.print(jobs_table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
