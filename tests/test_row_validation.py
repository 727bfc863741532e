"""
Tests for structural row validation.
"""

import pytest

from seacewatch.core.extract.rows import parse_ordinal, validate_row
from seacewatch.core.portals.base import RawRow
from tests.fakes import make_cells


def _row(cells) -> RawRow:
    return RawRow(cells=tuple(cells), row_index=0, page_number=1)


class TestValidateRow:
    def test_complete_row_passes(self):
        check = validate_row(_row(make_cells(12)))

        assert check.ok
        assert check.ordinal == 12

    def test_too_few_columns(self):
        check = validate_row(_row(make_cells(1)[:6]))

        assert not check.ok
        assert "columns" in check.reason

    @pytest.mark.parametrize("ordinal", ["", "N°", "0", "-3", "1a"])
    def test_ordinal_must_be_positive_integer(self, ordinal):
        cells = list(make_cells(1))
        cells[0] = ordinal

        assert not validate_row(_row(cells)).ok

    def test_missing_entity(self):
        assert not validate_row(_row(make_cells(1, entity="  "))).ok

    def test_header_row_is_rejected(self):
        check = validate_row(_row(make_cells(1, entity="Nombre o Sigla de la Entidad")))

        assert not check.ok
        assert check.reason == "header row"

    def test_short_description(self):
        assert not validate_row(_row(make_cells(1, description="Servicio"))).ok

    def test_thresholds_are_configurable(self):
        row = _row(make_cells(1, description="Servicio"))

        assert validate_row(row, min_description_length=5).ok


def test_parse_ordinal_strips_whitespace():
    assert parse_ordinal(" 40 ") == 40
    assert parse_ordinal("4 0") is None
