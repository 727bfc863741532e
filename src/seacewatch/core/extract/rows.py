"""
Structural validation of scraped result rows.

The results grid mixes data rows with header, filler and "no records"
rows. Those are recognised by shape and dropped quietly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from seacewatch.core.normalize.parsing import normalize_whitespace
from seacewatch.core.portals.base import RawRow

DEFAULT_HEADER_LABELS = ("nombre o sigla de la entidad", "entidad")

_ORDINAL_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class RowCheck:
    """Outcome of validating one row."""

    ok: bool
    reason: str | None = None
    ordinal: int | None = None


def parse_ordinal(text: str) -> int | None:
    """Row number from the first column, or None if it is not a positive integer."""
    text = normalize_whitespace(text)
    if not _ORDINAL_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value > 0 else None


def validate_row(
    row: RawRow,
    *,
    min_columns: int = 7,
    min_description_length: int = 10,
    header_labels: Iterable[str] = DEFAULT_HEADER_LABELS,
) -> RowCheck:
    """Check that a row looks like a procurement process listing."""
    if len(row.cells) < min_columns:
        return RowCheck(False, f"only {len(row.cells)} columns")

    ordinal = parse_ordinal(row.ordinal)
    if ordinal is None:
        return RowCheck(False, f"ordinal {row.ordinal!r} is not a positive integer")

    entity = normalize_whitespace(row.entity)
    if not entity:
        return RowCheck(False, "missing entity", ordinal)
    if entity.lower() in {label.lower() for label in header_labels}:
        return RowCheck(False, "header row", ordinal)

    description = normalize_whitespace(row.description)
    if len(description) < min_description_length:
        return RowCheck(False, f"description shorter than {min_description_length}", ordinal)

    return RowCheck(True, ordinal=ordinal)
