"""
Tests for CLI runtime bootstrap.
"""

import pytest

from seacewatch.cli.context import prepare_runtime
from seacewatch.core.config import DatabaseConfig


@pytest.fixture
def init_calls(monkeypatch, tmp_path) -> list[tuple[tuple, dict]]:
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("seacewatch.cli.context.setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(
        "seacewatch.persistence.db.init_db",
        lambda *args, **kwargs: calls.append((args, kwargs)),
    )
    return calls


class TestPrepareRuntime:
    def test_database_settings_reach_the_engine(self, app_config, init_calls):
        database = DatabaseConfig(url="postgresql://seace@db/seace", echo=True, pool_size=12)
        config = app_config.model_copy(update={"database": database})

        prepare_runtime(config)

        assert init_calls == [(("postgresql://seace@db/seace",), {"echo": True, "pool_size": 12})]

    def test_defaults(self, app_config, init_calls):
        prepare_runtime(app_config)

        (_, kwargs), = init_calls
        assert kwargs == {"echo": False, "pool_size": 5}
