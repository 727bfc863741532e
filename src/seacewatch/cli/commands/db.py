"""
Database commands: schema creation, Alembic migrations and table counts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from seacewatch.cli.context import load_config_or_exit

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)

ALEMBIC_INI = Path("alembic.ini")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to app.yaml")


def _alembic_config(config_path: Path | None):
    """Alembic config with sqlalchemy.url taken from app.yaml."""
    from alembic.config import Config

    if not ALEMBIC_INI.exists():
        err_console.print(f"[red]{ALEMBIC_INI} not found[/red] (run from the project root)")
        raise typer.Exit(1)

    app_config = load_config_or_exit(config_path)
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("sqlalchemy.url", app_config.database.url)
    return alembic_cfg


def _run_alembic(label: str, step: Callable[[], None]) -> None:
    console.print(label)
    try:
        step()
    except Exception as e:
        err_console.print(f"[red]Alembic error:[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]OK[/green]")


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop every table first (asks for confirmation)",
    ),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Create the processes, extraction_jobs and run_log_entries tables."""
    from seacewatch.persistence.db import drop_db, init_db

    config = load_config_or_exit(config_path)

    if drop_existing:
        if not typer.confirm(f"Drop all tables in {config.database.url}?", default=False):
            raise typer.Abort()
        drop_db(config.database.url)
        console.print("[yellow]Tables dropped[/yellow]")

    init_db(config.database.url, pool_size=config.database.pool_size)
    console.print(f"[green]OK[/green] Schema ready at {config.database.url}")


@app.command("migrate")
def run_migrations(
    revision: str = typer.Option("head", "--revision", "-r", help="Target revision"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Upgrade the schema with Alembic."""
    from alembic import command

    alembic_cfg = _alembic_config(config_path)
    _run_alembic(f"Upgrading to {revision}", lambda: command.upgrade(alembic_cfg, revision))


@app.command("downgrade")
def downgrade_database(
    revision: str = typer.Argument(..., help="Target revision, e.g. base"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Downgrade the schema with Alembic."""
    from alembic import command

    if not typer.confirm(f"Downgrade to '{revision}'? Dropped tables lose their rows."):
        raise typer.Abort()

    alembic_cfg = _alembic_config(config_path)
    _run_alembic(f"Downgrading to {revision}", lambda: command.downgrade(alembic_cfg, revision))


@app.command("current")
def show_current(config_path: Optional[Path] = ConfigOption) -> None:
    """Show the applied Alembic revision."""
    from alembic import command

    alembic_cfg = _alembic_config(config_path)
    _run_alembic("Current revision:", lambda: command.current(alembic_cfg, verbose=True))


@app.command("info")
def database_info(config_path: Optional[Path] = ConfigOption) -> None:
    """Row counts per table."""
    from sqlalchemy import func, select

    from seacewatch.persistence.db import get_engine, make_session_factory, session_scope
    from seacewatch.persistence.models import ExtractionJob, Process, RunLogEntry

    config = load_config_or_exit(config_path)
    factory = make_session_factory(get_engine(config.database.url, pool_size=config.database.pool_size))

    table = Table(title=config.database.url)
    table.add_column("Table")
    table.add_column("Rows", justify="right")

    try:
        with session_scope(factory) as session:
            for model in (Process, ExtractionJob, RunLogEntry):
                count = session.execute(select(func.count()).select_from(model)).scalar_one()
                table.add_row(model.__tablename__, str(count))
    except Exception as e:
        err_console.print(f"[red]Cannot read database:[/red] {e}")
        err_console.print("[dim]Run 'seacewatch db init' first[/dim]")
        raise typer.Exit(1)

    console.print(table)
