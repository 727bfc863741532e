"""
Extraction parameters: the immutable input of one extraction job.

Accepts the camelCase keys used by job submitters (``objetoContratacion``,
``anio``, ``maxProcesses``, ``fechaDesde``...) as well as field names.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from seacewatch.core.config.models import ContractObjectType
from seacewatch.core.normalize.parsing import parse_filter_date, strip_accents


DEFAULT_KEYWORDS = ("software",)
DEFAULT_MAX_PROCESSES = 100


def _current_year() -> int:
    return date.today().year


class ExtractionParams(BaseModel):
    """Search filters and admission cap for one run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    keywords: tuple[str, ...] = Field(
        default=DEFAULT_KEYWORDS,
        description="Free-text keywords, joined with spaces in the description filter",
    )
    contract_object: ContractObjectType = Field(
        default=ContractObjectType.SERVICIO,
        alias="objetoContratacion",
    )
    year: int = Field(
        default_factory=_current_year,
        alias="anio",
        ge=2000,
        le=2100,
    )
    max_processes: int | None = Field(
        default=DEFAULT_MAX_PROCESSES,
        alias="maxProcesses",
        ge=1,
        description="Maximum newly inserted records (None = unbounded)",
    )
    date_from: date | None = Field(default=None, alias="fechaDesde")
    date_to: date | None = Field(default=None, alias="fechaHasta")
    entity: str | None = Field(default=None, alias="entidad")
    process_type: str | None = Field(default=None, alias="tipoProceso")

    @model_validator(mode="before")
    @classmethod
    def default_date_range(cls, data: Any) -> Any:
        """Fill the publication range with Jan 1 - Dec 31 of the year."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        year = data.get("anio", data.get("year")) or _current_year()
        try:
            year = int(year)
        except (TypeError, ValueError):
            return data
        for alias, name, default in (
            ("fechaDesde", "date_from", date(year, 1, 1)),
            ("fechaHasta", "date_to", date(year, 12, 31)),
        ):
            if data.get(alias) in (None, "") and data.get(name) in (None, ""):
                data.pop(alias, None)
                data[name] = default
        return data

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_KEYWORDS
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)):
            cleaned = tuple(" ".join(str(k).split()) for k in v)
            return tuple(k for k in cleaned if k)
        return v

    @field_validator("contract_object", mode="before")
    @classmethod
    def fold_contract_object(cls, v: Any) -> Any:
        if isinstance(v, str):
            return strip_accents(v)
        return v

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def parse_loose_date(cls, v: Any) -> Any:
        if v is None or isinstance(v, date):
            return v
        parsed = parse_filter_date(v)
        if parsed is None:
            raise ValueError(f"Unrecognized date: {v!r}")
        return parsed

    @field_validator("entity", "process_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_range(self) -> ExtractionParams:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("fechaDesde must not be after fechaHasta")
        return self

    @property
    def keyword_text(self) -> str:
        return " ".join(self.keywords)

    @property
    def is_bounded(self) -> bool:
        return self.max_processes is not None

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict using the external camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
