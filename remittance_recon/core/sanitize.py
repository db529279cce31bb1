"""
Primitive cell sanitizers.

Converts raw spreadsheet cells (text, numbers, missing values) into
canonical scalars. Parsing is fail-soft: a malformed amount becomes 0 and
a malformed date becomes EPOCH_DATE, so a dirty source file never halts
reconciliation. Consumers that care flag zero/sentinel values themselves.
"""
import re
import unicodedata
import warnings
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import pandas as pd

# "Unknown date" placeholder, distinct from a parse error
EPOCH_DATE = date(1970, 1, 1)

# Fallback-parsed dates before this year are treated as unknown
MIN_PLAUSIBLE_YEAR = 1900

MONTH_ABBREVIATIONS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

_PARENTHESIZED = re.compile(r"\(([^)]+)\)")
_NON_NUMERIC = re.compile(r"[^0-9\-.,]")
_LEADING_NUMBER = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")
_DAY_MONTH_YEAR = re.compile(r"([0-9]{2})-([A-Z]{3})-([0-9]{4})")
_YEAR_TOKEN = re.compile(r"(?<![0-9])[0-9]{4}(?![0-9])")
_UNSAFE_NAME_CHARS = re.compile(r'[\s\\/:"*?<>|]+')
_UNDERSCORE_RUN = re.compile(r"__+")
_CENTS = Decimal("0.01")


def is_missing(value: Any) -> bool:
    """
    Check whether a cell is absent.

    None and pandas missing markers (NaN, NaT, pd.NA) count as absent;
    an empty string does not.
    """
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_present(value: Any) -> bool:
    """Check whether a cell holds something other than blanks."""
    return not is_missing(value) and to_text(value) != ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def to_text(value: Any) -> str:
    """
    Convert a raw cell to trimmed text. Never fails.

    Integral floats render without a trailing ".0" so that numeric
    reference numbers keep their spreadsheet spelling.

    Args:
        value: Raw cell value

    Returns:
        Trimmed string, empty for missing cells
    """
    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_amount(value: Any) -> Decimal:
    """
    Parse a raw amount cell into a signed decimal.

    A parenthesized part "(...)" marks an accounting negative: the enclosed
    text is used and the sign forced negative. All characters other than
    digits, "-", "." and "," are dropped and commas are removed as thousands
    separators. Comma-decimal locales must be converted before this call.

    Args:
        value: Raw amount (string or number)

    Returns:
        Decimal amount, 0 for empty or unparseable input
    """
    if is_missing(value):
        return Decimal(0)

    if _is_number(value):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return Decimal(0)
        return number if number.is_finite() else Decimal(0)

    text = to_text(value)
    if not text:
        return Decimal(0)

    is_negative = False
    match = _PARENTHESIZED.search(text)
    if match:
        is_negative = True
        text = match.group(1)

    text = _NON_NUMERIC.sub("", text).replace(",", "")

    # Longest leading numeric prefix, so "1.2.3" reads as 1.2
    number_match = _LEADING_NUMBER.match(text)
    if not number_match:
        return Decimal(0)

    number = Decimal(number_match.group(0))
    if is_negative:
        number = -abs(number)
    return number


def to_date(value: Any, day_first: bool = False) -> date:
    """
    Parse a raw date cell.

    DD-MMM-YYYY with an English three-letter month (any case) is the
    authoritative format. Anything else goes through the generic pandas
    parser, which is trusted only when the text carries a four-digit year;
    day_first resolves ambiguous numeric dates for regions that write the
    day first.

    Args:
        value: Raw date cell
        day_first: Prefer day-first interpretation in the fallback parser

    Returns:
        Calendar date, or EPOCH_DATE when empty or unparseable
    """
    if is_missing(value):
        return EPOCH_DATE
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        # Serial day numbers are not interpreted
        return EPOCH_DATE

    text = to_text(value)
    if not text:
        return EPOCH_DATE

    match = _DAY_MONTH_YEAR.search(text.upper())
    if match:
        month = MONTH_ABBREVIATIONS.get(match.group(2))
        if month is not None:
            try:
                return date(int(match.group(3)), month, int(match.group(1)))
            except ValueError:
                pass

    return _parse_generic_date(text, day_first)


def _parse_generic_date(text: str, day_first: bool) -> date:
    # pandas fills in a missing year; only text carrying one is trusted
    if not _YEAR_TOKEN.search(text):
        return EPOCH_DATE

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce", dayfirst=day_first)
        except (ValueError, TypeError, OverflowError):
            return EPOCH_DATE

    if is_missing(parsed) or parsed.year < MIN_PLAUSIBLE_YEAR:
        return EPOCH_DATE
    return parsed.date()


def format_amount(value: Any) -> str:
    """
    Render an amount for display: two decimals, comma thousands grouping.

    Not meant to be parsed back.
    """
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite() or amount == 0:
        amount = Decimal(0)
    return f"{amount.quantize(_CENTS, rounding=ROUND_HALF_UP):,.2f}"


def sanitize_name(text: Any) -> str:
    """
    Make text safe for use as a file or resource name.

    Whitespace and \\ / : " * ? < > | become "_"; underscore runs collapse.
    """
    name = _UNSAFE_NAME_CHARS.sub("_", to_text(text))
    return _UNDERSCORE_RUN.sub("_", name)


def strip_accents(text: Any) -> str:
    """
    Normalize text for label matching.

    Removes diacritics (including the Turkish dotted/dotless i),
    lower-cases and collapses whitespace.
    """
    normalized = to_text(text).replace("İ", "I").replace("ı", "i")
    normalized = unicodedata.normalize("NFD", normalized)
    normalized = "".join(char for char in normalized if not unicodedata.combining(char))
    return " ".join(normalized.lower().split())
