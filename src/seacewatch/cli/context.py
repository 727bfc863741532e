"""
Shared CLI setup: configuration loading, logging and database bootstrap.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from seacewatch.core.config import AppConfig, ConfigError, load_app_config
from seacewatch.core.logging import setup_logging

DEFAULT_CONFIG_PATH = Path("configs/app.yaml")

err_console = Console(stderr=True)


def load_config_or_exit(path: Path | None = None) -> AppConfig:
    """Load app config, printing a readable error and exiting on failure."""
    try:
        return load_app_config(path or DEFAULT_CONFIG_PATH)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def prepare_runtime(config: AppConfig, verbose: bool = False) -> None:
    """Configure logging and make sure the schema exists."""
    from seacewatch.persistence.db import init_db

    config.ensure_directories()
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
    init_db(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
    )
