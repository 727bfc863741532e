"""Configuration loading and validation."""

from .models import (
    # Enums
    BrowserType,
    ContractObjectType,
    JobStatus,
    # Config models
    AppConfig,
    BrowserConfig,
    DatabaseConfig,
    ExportConfig,
    ExtractionSettings,
    LoggingConfig,
    OrchestratorConfig,
    PortalConfig,
    PortalSelectors,
)
from .params import ExtractionParams
from .loader import ConfigError, load_app_config, write_default_app_config

__all__ = [
    # Enums
    "BrowserType",
    "ContractObjectType",
    "JobStatus",
    # Config models
    "AppConfig",
    "BrowserConfig",
    "DatabaseConfig",
    "ExportConfig",
    "ExtractionSettings",
    "LoggingConfig",
    "OrchestratorConfig",
    "PortalConfig",
    "PortalSelectors",
    # Job input
    "ExtractionParams",
    # Loaders
    "ConfigError",
    "load_app_config",
    "write_default_app_config",
]
