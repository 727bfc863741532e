"""
Record normalization: RawRow -> ProcessRecord.

Normalization never raises on bad cell content. Unparsable dates and
amounts become None, blanks become None, and a missing nomenclature gets
a generated identifier so every record has a key to upsert on.
"""

from __future__ import annotations

import random
import string
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from seacewatch.core.logging import LoggerLike, get_logger
from seacewatch.core.portals.base import (
    COL_AMOUNT,
    COL_CONTRACT_OBJECT,
    COL_CURRENCY,
    COL_DESCRIPTION,
    COL_ENTITY,
    COL_NOMENCLATURE,
    COL_PUBLISHED,
    COL_RESTARTED_FROM,
    COL_SNIP,
    COL_VERSION,
    RawRow,
)

from .parsing import clean_cell, parse_amount, parse_publication_date

DEFAULT_CURRENCY = "Soles"
DEFAULT_STATUS = "Published"
DEFAULT_SCHEMA_VERSION = "3"
UNKNOWN_ENTITY = "Entidad Desconocida"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessRecord:
    """One normalized procurement process listing."""

    process_id: str
    entity_name: str
    published_at: datetime | None = None
    published_text: str | None = None
    nomenclature: str | None = None
    restarted_from: str | None = None
    contract_object: str | None = None
    description: str | None = None
    snip_code: str | None = None
    reference_amount: Decimal | None = None
    currency: str = DEFAULT_CURRENCY
    department: str | None = None
    province: str | None = None
    district: str | None = None
    process_type: str | None = None
    status: str = DEFAULT_STATUS
    source_url: str | None = None
    page_number: int | None = None
    schema_version: str = DEFAULT_SCHEMA_VERSION
    scraped_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.process_id:
            raise ValueError("process_id must not be empty")
        if not self.currency:
            self.currency = DEFAULT_CURRENCY
        if self.reference_amount is not None and (
            not self.reference_amount.is_finite() or self.reference_amount < 0
        ):
            raise ValueError(f"Invalid reference amount: {self.reference_amount}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def mutable_fields(self) -> dict[str, Any]:
        """Every field an update may overwrite (all but the identity)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "process_id"}


class RecordNormalizer:
    """Turn validated rows into `ProcessRecord` values.

    `clock` and `id_factory` exist so identifiers are reproducible in tests.
    """

    def __init__(
        self,
        log: LoggerLike | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[int], str] | None = None,
    ):
        self.log = log or get_logger("normalize")
        self.clock = clock
        self.id_factory = id_factory or self._clocked_id

    def normalize(self, row: RawRow) -> ProcessRecord:
        nomenclature = clean_cell(row.cell(COL_NOMENCLATURE))
        process_id = nomenclature
        if process_id is None:
            process_id = self.id_factory(row.row_index)
            self.log.debug(f"Row {row.row_index} on page {row.page_number} has no nomenclature, using {process_id}")

        published = parse_publication_date(row.cell(COL_PUBLISHED))
        if published.original and published.value is None:
            self.log.debug(f"Unparsable publication date {published.original!r} for {process_id}")

        return ProcessRecord(
            process_id=process_id,
            entity_name=clean_cell(row.cell(COL_ENTITY)) or UNKNOWN_ENTITY,
            published_at=published.value,
            published_text=published.text,
            nomenclature=nomenclature,
            restarted_from=clean_cell(row.cell(COL_RESTARTED_FROM)),
            contract_object=clean_cell(row.cell(COL_CONTRACT_OBJECT)),
            description=clean_cell(row.cell(COL_DESCRIPTION)),
            snip_code=clean_cell(row.cell(COL_SNIP)),
            reference_amount=parse_amount(row.cell(COL_AMOUNT), logger=self.log),
            currency=clean_cell(row.cell(COL_CURRENCY)) or DEFAULT_CURRENCY,
            source_url=row.source_url or None,
            page_number=row.page_number,
            schema_version=clean_cell(row.cell(COL_VERSION)) or DEFAULT_SCHEMA_VERSION,
            scraped_at=self.clock(),
        )

    def normalize_many(self, rows: list[RawRow]) -> list[ProcessRecord]:
        return [self.normalize(row) for row in rows]

    def _clocked_id(self, index: int) -> str:
        return generate_process_id(index, now=self.clock())


def generate_process_id(index: int, now: datetime | None = None) -> str:
    """Synthetic identifier: PROC-<epoch ms>-<row index>-<9 random chars>."""
    now = now or _utcnow()
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"PROC-{int(now.timestamp() * 1000)}-{index}-{suffix}"
