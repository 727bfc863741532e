"""
Tests for RawRow -> ProcessRecord normalization.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from seacewatch.core.normalize.record import (
    DEFAULT_CURRENCY,
    UNKNOWN_ENTITY,
    ProcessRecord,
    RecordNormalizer,
    generate_process_id,
)
from seacewatch.core.portals.base import RawRow
from tests.fakes import FAKE_URL, make_cells

FIXED_NOW = datetime(2025, 10, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def normalizer() -> RecordNormalizer:
    return RecordNormalizer(clock=lambda: FIXED_NOW, id_factory=lambda i: f"GEN-{i}")


def _row(cells, index=0, page=1) -> RawRow:
    return RawRow(cells=tuple(cells), row_index=index, page_number=page, source_url=FAKE_URL)


class TestRecordNormalizer:
    def test_full_row(self, normalizer):
        record = normalizer.normalize(_row(make_cells(7, nomenclature="AS-SM-7-2025-MDM/CS-1"), page=2))

        assert record.process_id == "AS-SM-7-2025-MDM/CS-1"
        assert record.nomenclature == "AS-SM-7-2025-MDM/CS-1"
        assert record.entity_name == "MUNICIPALIDAD DISTRITAL DE MIRAFLORES"
        assert record.published_at == datetime(2025, 10, 9, 14, 30)
        assert record.published_text == "2025-10-09 14:30"
        assert record.contract_object == "Servicio"
        assert record.reference_amount == Decimal("1234567.89")
        assert record.currency == "Soles"
        assert record.schema_version == "3"
        assert record.source_url == FAKE_URL
        assert record.page_number == 2
        assert record.scraped_at == FIXED_NOW
        assert record.status == "Published"

    def test_blank_cells_become_none(self, normalizer):
        cells = list(make_cells(1))
        cells[4] = "  "  # restarted from
        cells[7] = ""  # snip
        record = normalizer.normalize(_row(cells))

        assert record.restarted_from is None
        assert record.snip_code is None

    def test_bad_values_do_not_raise(self, normalizer):
        record = normalizer.normalize(_row(make_cells(1, published="pronto", amount="---")))

        assert record.published_at is None
        assert record.published_text is None
        assert record.reference_amount is None

    def test_missing_nomenclature_gets_generated_id(self, normalizer):
        record = normalizer.normalize(_row(make_cells(3, nomenclature=" "), index=4))

        assert record.process_id == "GEN-4"
        assert record.nomenclature is None

    def test_defaults_for_missing_entity_and_currency(self, normalizer):
        record = normalizer.normalize(_row(make_cells(1, entity="", currency="")))

        assert record.entity_name == UNKNOWN_ENTITY
        assert record.currency == DEFAULT_CURRENCY

    def test_short_row_is_padded_with_none(self, normalizer):
        record = normalizer.normalize(_row(make_cells(1)[:7]))

        assert record.reference_amount is None
        assert record.currency == DEFAULT_CURRENCY
        assert record.schema_version == "3"


class TestProcessRecord:
    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            ProcessRecord(process_id="", entity_name="X")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            ProcessRecord(process_id="A", entity_name="X", reference_amount=Decimal("-1"))

    def test_mutable_fields_exclude_identity(self):
        record = ProcessRecord(process_id="A", entity_name="X")

        assert "process_id" not in record.mutable_fields()
        assert record.mutable_fields()["entity_name"] == "X"


def test_generated_ids_are_unique_and_shaped():
    first = generate_process_id(3)
    second = generate_process_id(3)

    assert first != second
    prefix, millis, index, suffix = first.split("-")
    assert prefix == "PROC"
    assert millis.isdigit()
    assert index == "3"
    assert len(suffix) == 9


def test_generated_id_follows_the_normalizer_clock():
    normalizer = RecordNormalizer(clock=lambda: FIXED_NOW)

    record = normalizer.normalize(_row(make_cells(3, nomenclature=""), index=7))

    prefix, millis, index, _ = record.process_id.split("-")
    assert prefix == "PROC"
    assert int(millis) == int(FIXED_NOW.timestamp() * 1000)
    assert index == "7"
