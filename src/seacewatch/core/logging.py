"""
Logging infrastructure for SeaceWatch.

Provides:
- JSON-lines file logging
- Rich console output for terminal
- Contextual logging that stamps job/page context on every record
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rich.console import Console


ROOT_LOGGER_NAME = "seacewatch"

CONTEXT_KEYS = ("job_id", "page", "process_id", "url", "step")


# =============================================================================
# JSON Formatter for File Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str, ensure_ascii=False)


# =============================================================================
# Rich Console Handler
# =============================================================================


class RichConsoleHandler(logging.Handler):
    """Handler that prints to a Rich console with level colors and job prefix."""

    LEVEL_STYLES = {
        logging.DEBUG: "dim",
        logging.INFO: "default",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "bold red",
    }

    def __init__(self, console: Console | None = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console

            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            from rich.markup import escape

            message = escape(self.format(record))
            style = self.LEVEL_STYLES.get(record.levelno, "default")

            prefix = ""
            job_id = getattr(record, "job_id", None)
            if job_id:
                prefix = f"[cyan][{str(job_id)[:8]}][/cyan] "
            page = getattr(record, "page", None)
            if page is not None:
                prefix += f"[magenta]p{page}[/magenta] "

            self.console.print(f"{prefix}[{style}]{message}[/{style}]")

            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Set up logging for SeaceWatch.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        json_format: Use JSON lines for the file handler
        rich_console: Use Rich for console output

    Returns:
        Root logger for seacewatch
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    console_handler.setLevel(getattr(logging, level.upper()))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the seacewatch tree."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


# =============================================================================
# Contextual Logging Adapter
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that adds job/page context to log records.

    One instance is built per job by the orchestrator and handed to every
    component taking part in that job.
    """

    def __init__(
        self,
        logger: logging.Logger,
        job_id: str | None = None,
        page: int | None = None,
    ):
        super().__init__(logger, {})
        self.job_id = job_id
        self.page = page

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        if self.job_id:
            extra.setdefault("job_id", self.job_id)
        if self.page is not None:
            extra.setdefault("page", self.page)
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(
        self,
        job_id: str | None = None,
        page: int | None = None,
    ) -> ContextualLogger:
        """Create a new logger with additional context."""
        return ContextualLogger(
            self.logger,
            job_id=job_id or self.job_id,
            page=page if page is not None else self.page,
        )


def get_contextual_logger(
    name: str | None = None,
    job_id: str | None = None,
    page: int | None = None,
) -> ContextualLogger:
    """Get a contextual logger carrying job context."""
    return ContextualLogger(get_logger(name), job_id=job_id, page=page)


LoggerLike = logging.Logger | logging.LoggerAdapter
