"""
Shared fixtures: in-memory database, fast settings, app config.
"""

from __future__ import annotations

import pytest

from seacewatch.core.backends.base import ActionFailed
from seacewatch.core.config import (
    AppConfig,
    ExportConfig,
    ExtractionSettings,
    OrchestratorConfig,
)
from seacewatch.core.fetch.retries import RetryConfig
from seacewatch.persistence.db import create_db_engine, create_schema, make_session_factory


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    create_schema(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def fast_settings() -> ExtractionSettings:
    return ExtractionSettings(
        settle_ms=0,
        page_pause_ms=0,
        position_change_timeout_ms=0,
        rows_timeout_ms=0,
    )


@pytest.fixture
def no_wait_retry() -> RetryConfig:
    return RetryConfig(
        max_attempts=2,
        min_wait=0,
        max_wait=0,
        jitter=False,
        retry_exceptions=(ActionFailed,),
    )


@pytest.fixture
def app_config(tmp_path, fast_settings) -> AppConfig:
    return AppConfig(
        config_dir=tmp_path / "configs",
        data_dir=tmp_path / "data",
        extraction=fast_settings,
        export=ExportConfig(directory=tmp_path / "exports"),
        orchestrator=OrchestratorConfig(max_concurrent_jobs=2, progress_flush_every=10),
    )
