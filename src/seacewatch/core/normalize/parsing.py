"""
Parsing utilities for normalizing scraped SEACE text.

Handles publication dates, reference amounts and filter dates. None of the
parsers raise on bad input; they return None and let the caller decide.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import dateparser

from seacewatch.core.logging import get_logger

_log = get_logger("normalize.parsing")


# =============================================================================
# Publication Dates
# =============================================================================


@dataclass
class ParsedDate:
    """Result of parsing a portal date string.

    `text` keeps the time precision the portal gave (``14:30`` stays
    ``14:30``); a bare date gets ``00:00:00``.
    """

    value: datetime | None
    text: str | None
    original: str
    format_detected: str | None = None


_PORTAL_DATE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)


def parse_publication_date(value: str | None) -> ParsedDate:
    """Parse ``dd/mm/yyyy[ HH:MM[:SS]]`` into a datetime and ISO-like text."""
    original = normalize_whitespace(value)
    if not original:
        return ParsedDate(value=None, text=None, original=original)

    match = _PORTAL_DATE.match(original)
    if not match:
        return ParsedDate(value=None, text=None, original=original)

    day, month, year, hour, minute, second = match.groups()
    try:
        parsed = datetime(
            int(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError:
        return ParsedDate(value=None, text=None, original=original)

    date_part = f"{int(year):04d}-{int(month):02d}-{int(day):02d}"
    if hour is None:
        time_part, fmt = "00:00:00", "dmy"
    elif second is None:
        time_part, fmt = f"{int(hour):02d}:{minute}", "dmy_hm"
    else:
        time_part, fmt = f"{int(hour):02d}:{minute}:{second}", "dmy_hms"

    return ParsedDate(
        value=parsed,
        text=f"{date_part} {time_part}",
        original=original,
        format_detected=fmt,
    )


def parse_filter_date(value: str | date | datetime | None) -> date | None:
    """Parse a user supplied date filter, day-first.

    Accepts ``01/03/2025``, ``2025-03-01`` and loose forms such as
    ``1 de marzo de 2025``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = normalize_whitespace(str(value))
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    portal = parse_publication_date(text)
    if portal.value is not None:
        return portal.value.date()

    parsed = dateparser.parse(
        text,
        languages=["es", "en"],
        settings={
            "DATE_ORDER": "DMY",
            "PREFER_DAY_OF_MONTH": "first",
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    return parsed.date() if parsed else None


def format_portal_date(value: date) -> str:
    """Format a date the way the search form expects it (dd/mm/yyyy)."""
    return value.strftime("%d/%m/%Y")


# =============================================================================
# Amounts
# =============================================================================


MISSING_AMOUNT_MARKERS = {"", "---", "N/A", "-", "NA"}


def parse_amount(
    value: str | None,
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> Decimal | None:
    """Parse a reference amount written with SEACE number formatting.

    ``.`` is a thousands separator and ``,`` the decimal mark, so
    ``1.234.567,89`` becomes ``Decimal("1234567.89")``. Placeholders,
    unparsable text, negative and non-finite values give None.
    """
    log = logger or _log
    text = normalize_whitespace(value)
    if text.upper() in MISSING_AMOUNT_MARKERS:
        return None

    numeric = text.replace(" ", "").replace(".", "").replace(",", ".")
    try:
        amount = Decimal(numeric)
    except InvalidOperation:
        log.warning(f"Unparsable amount: {text!r}")
        return None

    if not amount.is_finite():
        log.warning(f"Non-finite amount: {text!r}")
        return None
    if amount < 0:
        log.warning(f"Negative amount discarded: {text!r}")
        return None
    return amount


# =============================================================================
# Utility Functions
# =============================================================================


def normalize_whitespace(text: Any) -> str:
    """Collapse runs of whitespace (including nbsp) into single spaces."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def clean_cell(text: Any) -> str | None:
    """Whitespace-normalized cell text, with empty cells as None."""
    cleaned = normalize_whitespace(text)
    return cleaned or None


def strip_accents(text: str) -> str:
    """Lowercase and remove diacritics (consultoría -> consultoria)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()
