"""
Pydantic configuration models for SeaceWatch.

These models provide type-safe configuration with validation for:
- Application settings (database, logging, exports)
- Browser automation
- SEACE portal selectors and filter codes
- Extraction and orchestration tuning
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


SEACE_SEARCH_URL = (
    "https://prodapp2.seace.gob.pe/seacebus-uiwd-pub/buscadorPublico/buscadorPublico.xhtml"
)

_FORM = "tbBuscador:idFormBuscarProceso"


# =============================================================================
# Enums
# =============================================================================


class ContractObjectType(str, Enum):
    """Contract object categories accepted by the search form."""

    BIEN = "bien"
    SERVICIO = "servicio"
    CONSULTORIA = "consultoria"
    OBRA = "obra"


class JobStatus(str, Enum):
    """Lifecycle states of an extraction job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class BrowserType(str, Enum):
    """Playwright browser engines."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


# =============================================================================
# Browser Configuration
# =============================================================================


class BrowserConfig(BaseModel):
    """Playwright browser settings."""

    browser: BrowserType = Field(
        default=BrowserType.CHROMIUM,
        description="Browser engine to launch",
    )
    headless: bool = Field(
        default=True,
        description="Run browser without a window",
    )
    executable_path: str | None = Field(
        default=None,
        description="Browser binary; falls back to the CHROME_BIN environment variable",
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--window-size=1920,1080",
        ],
        description="Extra command line arguments for the browser",
    )
    viewport_width: int = Field(default=1920, ge=320, le=3840)
    viewport_height: int = Field(default=1080, ge=240, le=2160)
    user_agent: str | None = Field(
        default=None,
        description="Custom user agent string",
    )
    step_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        le=600000,
        description="Default timeout for each browser interaction",
    )
    navigation_timeout_ms: int = Field(
        default=90000,
        ge=1000,
        le=600000,
        description="Timeout for loading the portal",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts when opening the portal times out",
    )
    screenshots_on_error: bool = Field(
        default=True,
        description="Capture a screenshot when an action fails",
    )
    screenshots_path: Path = Field(
        default=Path("data/screenshots"),
        description="Directory for error screenshots",
    )


# =============================================================================
# Portal Configuration
# =============================================================================


class PortalSelectors(BaseModel):
    """CSS selectors for the SEACE public search page.

    A filter selector left as None means the form has no known control
    for it and the corresponding step is skipped.
    """

    tabs: str = 'li[role="tab"] a, a[role="tab"], button[role="tab"]'
    tab_fallback: str = 'li[role="tab"] a'
    contract_object: str | None = f'select[id="{_FORM}:j_idt201_input"]'
    year: str | None = f'select[id="{_FORM}:anioConvocatoria_input"]'
    date_from: str | None = f'input[id="{_FORM}:fechaPublicacionDesde_input"]'
    date_to: str | None = f'input[id="{_FORM}:fechaPublicacionHasta_input"]'
    keywords: str | None = f'input[id="{_FORM}:descripcionObjeto"]'
    entity: str | None = None
    process_type: str | None = None
    submit: str = f'button[id="{_FORM}:btnBuscarSel"]'
    results_ready: str = 'table[role="grid"] tbody tr'
    rows: str = 'table[role="grid"] tbody tr[data-ri]'
    rows_fallback: str = 'table[class*="ui-datatable"] tbody tr'
    next_button: str = ".ui-paginator-next"
    next_disabled_class: str = "ui-state-disabled"
    paginator_current: str = ".ui-paginator-current"


class PortalConfig(BaseModel):
    """Where the search page lives and how its widgets are addressed."""

    base_url: str = Field(
        default=SEACE_SEARCH_URL,
        description="Public search page URL",
    )
    tab_candidates: list[str] = Field(
        default_factory=lambda: ["Procedimiento", "Buscar"],
        description="Visible tab labels that lead to the search filters",
    )
    active_tab_classes: list[str] = Field(
        default_factory=lambda: ["ui-tabs-active", "ui-state-active"],
    )
    contract_object_codes: dict[str, str] = Field(
        default_factory=lambda: {
            "bien": "62",
            "consultoria": "63",
            "obra": "64",
            "servicio": "65",
        },
        description="Contract object label to select option value",
    )
    typing_delay_ms: int = Field(
        default=100,
        ge=0,
        le=1000,
        description="Delay between keystrokes when typing into inputs",
    )
    selectors: PortalSelectors = Field(default_factory=PortalSelectors)


# =============================================================================
# Extraction Configuration
# =============================================================================


class ExtractionSettings(BaseModel):
    """Pagination loop and row validation tuning."""

    max_pages: int = Field(
        default=200,
        ge=1,
        le=10000,
        description="Hard bound on pages visited per run",
    )
    max_rows_scanned: int | None = Field(
        default=None,
        ge=1,
        description="Stop reading rows after this many (None = read all pages)",
    )
    results_timeout_ms: int = Field(
        default=90000,
        ge=1000,
        description="How long to wait for the first results table",
    )
    position_change_timeout_ms: int = Field(
        default=10000,
        ge=0,
        description="Wait for the paginator text to change after clicking next",
    )
    rows_timeout_ms: int = Field(
        default=30000,
        ge=0,
        description="Wait for data rows after clicking next",
    )
    settle_ms: int = Field(
        default=2000,
        ge=0,
        description="Fixed delay around page transitions",
    )
    page_pause_ms: int = Field(
        default=1000,
        ge=0,
        description="Pause between extracted pages",
    )
    min_columns: int = Field(default=7, ge=1, le=11)
    min_description_length: int = Field(default=10, ge=0)
    header_labels: list[str] = Field(
        default_factory=lambda: ["nombre o sigla de la entidad", "entidad"],
        description="Entity cell values that mark header rows",
    )

    @field_validator("header_labels")
    @classmethod
    def lowercase_labels(cls, v: list[str]) -> list[str]:
        return [label.strip().lower() for label in v]


# =============================================================================
# Export / Orchestrator Configuration
# =============================================================================


class ExportConfig(BaseModel):
    """Side-file export settings."""

    enabled: bool = Field(
        default=True,
        description="Write txt/json/csv snapshots for every job",
    )
    directory: Path = Field(
        default=Path("exports"),
        description="Directory for export files",
    )


class OrchestratorConfig(BaseModel):
    """Background job execution settings."""

    max_concurrent_jobs: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Jobs allowed to hold a browser at the same time",
    )
    progress_flush_every: int = Field(
        default=25,
        ge=1,
        description="Persist job counters after this many upserts",
    )


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/seacewatch.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/seacewatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON lines for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    config_dir: Path = Field(
        default=Path("configs"),
        description="Configuration directory",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    export: ExportConfig = Field(default_factory=ExportConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.config_dir, self.data_dir, self.export.directory]:
            dir_path.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
        if self.browser.screenshots_on_error:
            self.browser.screenshots_path.mkdir(parents=True, exist_ok=True)
