"""
Export commands for browsing side files written by jobs.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from seacewatch.cli.context import load_config_or_exit

console = Console()

app = typer.Typer(
    help="Browse export files",
    no_args_is_help=True,
)


@app.command("list")
def list_exports(
    pattern: Optional[str] = typer.Argument(
        None,
        help="Only files whose name contains this text (job id, .csv, ...)",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List export files, newest first."""
    from seacewatch.core.export import ExportSink

    config = load_config_or_exit(config_path)
    files = ExportSink.from_config(config.export).list_exports(pattern)

    if not files:
        console.print(f"[dim]No export files in {config.export.directory}[/dim]")
        return

    table = Table(title=f"Exports in {config.export.directory}", show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified", justify="right")

    for path in files:
        stat = path.stat()
        table.add_row(
            path.name,
            f"{stat.st_size / 1024:.1f} KB",
            datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
