"""
Tests for job parameters and the YAML config loader.
"""

from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from seacewatch.core.config import (
    AppConfig,
    ConfigError,
    ContractObjectType,
    ExtractionParams,
    load_app_config,
    write_default_app_config,
)


class TestExtractionParams:
    def test_camel_case_payload(self):
        params = ExtractionParams.model_validate(
            {
                "keywords": ["software", "sistema"],
                "objetoContratacion": "Consultoría",
                "anio": 2024,
                "maxProcesses": 10,
                "fechaDesde": "01/03/2024",
                "fechaHasta": "2024-06-30",
            }
        )

        assert params.contract_object is ContractObjectType.CONSULTORIA
        assert params.year == 2024
        assert params.max_processes == 10
        assert params.date_from == date(2024, 3, 1)
        assert params.date_to == date(2024, 6, 30)
        assert params.keyword_text == "software sistema"

    def test_defaults(self):
        params = ExtractionParams(year=2025)

        assert params.keywords == ("software",)
        assert params.contract_object is ContractObjectType.SERVICIO
        assert params.max_processes == 100
        assert params.date_from == date(2025, 1, 1)
        assert params.date_to == date(2025, 12, 31)
        assert params.entity is None

    def test_unbounded(self):
        params = ExtractionParams(year=2025, maxProcesses=None)

        assert not params.is_bounded

    def test_single_keyword_string(self):
        params = ExtractionParams(year=2025, keywords="  sistema   web ")

        assert params.keywords == ("sistema web",)

    def test_blank_entity_is_none(self):
        assert ExtractionParams(year=2025, entidad="   ").entity is None

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionParams(year=2025, fechaDesde="2025-06-01", fechaHasta="2025-01-01")

    def test_unknown_date_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionParams(year=2025, fechaDesde="abc")

    def test_zero_cap_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionParams(year=2025, maxProcesses=0)

    def test_frozen(self):
        params = ExtractionParams(year=2025)

        with pytest.raises(ValidationError):
            params.year = 2020

    def test_payload_uses_external_keys(self):
        payload = ExtractionParams(year=2025).to_payload()

        assert payload["anio"] == 2025
        assert payload["objetoContratacion"] == "servicio"
        assert payload["fechaDesde"] == "2025-01-01"
        assert payload["maxProcesses"] == 100


class TestLoadAppConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_app_config(tmp_path / "nope.yaml")

        assert config.model_dump() == AppConfig().model_dump()

    def test_env_expansion(self, tmp_path, monkeypatch):
        path = tmp_path / "app.yaml"
        path.write_text(
            'database:\n  url: "${SEACE_DB_URL:-sqlite:///fallback.db}"\n'
            'logging:\n  level: "${SEACE_LOG_LEVEL:-info}"\n',
            encoding="utf-8",
        )
        monkeypatch.setenv("SEACE_DB_URL", "sqlite:///from-env.db")
        monkeypatch.delenv("SEACE_LOG_LEVEL", raising=False)

        config = load_app_config(path)

        assert config.database.url == "sqlite:///from-env.db"
        assert config.logging.level == "INFO"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "app.yaml"
        path.write_text("database: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc:
            load_app_config(path)

        assert exc.value.path == path
        assert exc.value.details

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "app.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_app_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "app.yaml"
        path.write_text("logging:\n  level: LOUD\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc:
            load_app_config(path)

        assert "level" in exc.value.details

    def test_written_default_loads_back(self, tmp_path):
        path = write_default_app_config(tmp_path / "configs" / "app.yaml")

        config = load_app_config(path)

        assert path.exists()
        assert config.model_dump() == AppConfig().model_dump()
        assert isinstance(config.export.directory, Path)
