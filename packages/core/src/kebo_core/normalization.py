"""Canonicalization of identifiers, names, dates and amounts.

Every lookup key used by the reference index goes through one of these
functions, so two records describe the same customer or vehicle exactly
when their normalized keys are equal. Dates are handled as calendar dates
(``datetime.date``) only: nothing here converts through UTC, because the
source documents store local wall-clock dates and a timezone round trip
moves them by a day.

None of these functions raise on bad input. Unparseable dates become
``None`` and unparseable amounts become ``Decimal("0")``.
"""

import math
import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import structlog

logger = structlog.get_logger()

PLACEHOLDER = "—"

_NON_DIGIT = re.compile(r"\D")
_NON_VEHICLE_KEY = re.compile(r"[^A-Z0-9]")
_WHITESPACE = re.compile(r"\s+")
_STRICT_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_CURRENCY_NOISE = re.compile(r"(R\$|\s)")

# Layouts found in the store's documents besides ISO-8601
_DATE_FORMATS = (
    "%d/%m/%Y",
    "%d/%m/%y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)

_CENTS = Decimal("0.01")


# =============================================================================
# IDENTIFIERS
# =============================================================================

def normalize_tax_id(value: Optional[Any]) -> str:
    """Keep only the digits of a CPF/CNPJ. Empty result means "no key"."""
    if value is None:
        return ""
    return _NON_DIGIT.sub("", str(value))


def normalize_name(value: Optional[Any]) -> str:
    """Normalize a person name for comparison.

    Strips diacritics, collapses whitespace runs, trims and lower-cases:
    ``"João   DA Silva"`` becomes ``"joao da silva"``.
    """
    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip().lower()


def names_match(left: Optional[Any], right: Optional[Any]) -> bool:
    """Loose name comparison used by the fuzzy customer fallback.

    Two names match when their normalized forms are equal, or when one is a
    prefix or a substring of the other. Empty names never match. Short names
    ("ana") will match longer ones ("ana paula", "mariana"); callers rely on
    this behavior, so it is kept as is.
    """
    a = normalize_name(left)
    b = normalize_name(right)
    if not a or not b:
        return False
    return a == b or a.startswith(b) or b.startswith(a) or a in b or b in a


def normalize_vehicle_key(value: Optional[Any]) -> str:
    """Upper-case a chassis, plate or renavam and drop everything but A-Z0-9."""
    if value is None:
        return ""
    return _NON_VEHICLE_KEY.sub("", str(value).upper())


# =============================================================================
# DATES
# =============================================================================

def _date_from_fields(value: date) -> date:
    # Wall-clock fields of the value itself; no astimezone()
    return date(value.year, value.month, value.day)


def _parse_date_string(text: str) -> Optional[date]:
    text = text.strip()
    if not text:
        return None

    match = _STRICT_ISO_DATE.match(text[:10])
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    try:
        return _date_from_fields(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def parse_calendar_date(value: Any) -> Optional[date]:
    """Parse any of the date representations found in the source documents.

    Resolution order:
        1. Objects exposing ``to_date()`` / ``toDate()`` (database timestamps)
           are converted and the result's own year/month/day are used.
        2. ``datetime`` values keep their own wall-clock date; ``date``
           values pass through.
        3. Strings starting with a strict ``YYYY-MM-DD`` are taken verbatim.
        4. Other strings are tried as ISO-8601 datetimes and as Brazilian
           ``DD/MM/YYYY`` style layouts.

    Args:
        value: Timestamp object, ``date``/``datetime``, or string.

    Returns:
        The calendar date, or None when the value cannot be read as a date.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _date_from_fields(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return _parse_date_string(value)

    converter = getattr(value, "to_date", None) or getattr(value, "toDate", None)
    if callable(converter):
        try:
            converted = converter()
        except Exception as exc:  # foreign timestamp types raise arbitrary errors
            logger.warning("date_conversion_failed", value_type=type(value).__name__, error=str(exc))
            return None
        if isinstance(converted, (date, str)):
            return parse_calendar_date(converted)

    return None


def to_iso_date(value: Any) -> str:
    """Render a date as ``YYYY-MM-DD``, or ``""`` when there is no date."""
    parsed = parse_calendar_date(value)
    return parsed.isoformat() if parsed else ""


def format_br_date(value: Any) -> str:
    """Render a date as ``DD/MM/YYYY``, or ``""`` when there is no date."""
    parsed = parse_calendar_date(value)
    if parsed is None:
        return ""
    return f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year}"


# =============================================================================
# AMOUNTS
# =============================================================================

def parse_decimal_amount(value: Any) -> Decimal:
    """Parse a currency amount into an exact Decimal.

    Numbers pass through (non-finite values become zero). Strings are read
    as Brazilian formatted currency: ``"R$ 1.234,56"`` -> ``Decimal("1234.56")``.
    Anything unreadable is zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return Decimal("0")
        # repr of a float is its shortest round-tripping decimal form
        return Decimal(repr(value))

    if isinstance(value, str):
        clean = _CURRENCY_NOISE.sub("", value)
        clean = clean.replace(".", "").replace(",", ".")
        if not clean:
            return Decimal("0")
        try:
            parsed = Decimal(clean)
        except InvalidOperation:
            return Decimal("0")
        return parsed if parsed.is_finite() else Decimal("0")

    return Decimal("0")


def format_brl(amount: Any, symbol: str = "R$") -> str:
    """Format an amount the Brazilian way: ``R$ 1.234,56``."""
    value = parse_decimal_amount(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    grouped = f"{abs(value):,.2f}".translate(str.maketrans({",": ".", ".": ","}))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {grouped}"


# =============================================================================
# FIELD PRECEDENCE HELPERS
# =============================================================================

def is_empty(value: Any) -> bool:
    """True for None, blank strings and non-finite numbers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, Decimal):
        return not value.is_finite()
    return False


def first_non_empty(*values: Any) -> Any:
    """Return the first value that is not empty; strings come back stripped."""
    for value in values:
        if is_empty(value):
            continue
        return value.strip() if isinstance(value, str) else value
    return None


def display(value: Any, placeholder: str = PLACEHOLDER) -> str:
    """Render a value for a report cell, using the placeholder when empty."""
    if is_empty(value):
        return placeholder
    return str(value)


__all__ = [
    "PLACEHOLDER",
    "normalize_tax_id",
    "normalize_name",
    "names_match",
    "normalize_vehicle_key",
    "parse_calendar_date",
    "to_iso_date",
    "format_br_date",
    "parse_decimal_amount",
    "format_brl",
    "is_empty",
    "first_non_empty",
    "display",
]
