"""
Unit tests for primitive cell sanitizers.
"""
from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from remittance_recon.core.sanitize import (
    EPOCH_DATE,
    format_amount,
    is_present,
    sanitize_name,
    strip_accents,
    to_amount,
    to_date,
    to_text,
)

UNSAFE_NAME_CHARS = set('\\/:"*?<>| \t\n')


def test_to_text():
    """Test text conversion never fails and trims."""
    assert to_text(None) == ""
    assert to_text(float("nan")) == ""
    assert to_text("  INV-1  ") == "INV-1"
    assert to_text(12.0) == "12"
    assert to_text(12.5) == "12.5"
    assert to_text(100234) == "100234"


def test_is_present():
    """Test blank and missing cells are not present."""
    assert is_present("x")
    assert is_present(0)
    assert not is_present("   ")
    assert not is_present(None)
    assert not is_present(pd.NA)


@pytest.mark.parametrize("raw, expected", [
    ("(1,234.50)", Decimal("-1234.50")),
    ("", Decimal("0")),
    ("abc", Decimal("0")),
    ("1,234.50", Decimal("1234.50")),
    ("$ 1,234.50", Decimal("1234.50")),
    ("TRY -45.10", Decimal("-45.10")),
    ("(-5)", Decimal("-5")),
    ("USD (500)", Decimal("-500")),
    ("1.2.3", Decimal("1.2")),
    ("-", Decimal("0")),
])
def test_to_amount(raw, expected):
    """Test amount parsing rules."""
    assert to_amount(raw) == expected


def test_to_amount_missing_and_numeric_cells():
    """Test non-string cells."""
    assert to_amount(None) == 0
    assert to_amount(float("nan")) == 0
    assert to_amount(float("inf")) == 0
    assert to_amount(12.5) == Decimal("12.5")
    assert to_amount(-3) == Decimal("-3")


def test_to_amount_idempotent():
    """Test parsing an already canonical amount reproduces it."""
    for raw in ["(1,234.50)", "1,234.50", "0.01", "-7"]:
        once = to_amount(raw)
        assert to_amount(once) == once
        assert to_amount(str(once)) == once


def test_to_date_month_abbreviation():
    """Test the DD-MMM-YYYY format."""
    assert to_date("15-JAN-2024") == date(2024, 1, 15)
    assert to_date("15-jan-2024") == date(2024, 1, 15)
    assert to_date("Invoice 05-Mar-2024 (final)") == date(2024, 3, 5)
    assert to_date("31-DEC-1999") == date(1999, 12, 31)


def test_to_date_sentinel():
    """Test empty and unparseable dates map to the sentinel."""
    assert to_date("") == EPOCH_DATE
    assert to_date(None) == EPOCH_DATE
    assert to_date(pd.NaT) == EPOCH_DATE
    assert to_date("not a date") == EPOCH_DATE
    assert to_date("today") == EPOCH_DATE
    assert to_date("15-XYZ-2024") == EPOCH_DATE


def test_to_date_fallback():
    """Test the generic fallback parser."""
    assert to_date("2024-01-15") == date(2024, 1, 15)
    assert to_date("03/04/2024") == date(2024, 3, 4)
    assert to_date("03/04/2024", day_first=True) == date(2024, 4, 3)


@pytest.mark.parametrize("raw", ["5/3", "15-FEB", "Jan 5", "03.04", "0001-05-03"])
def test_to_date_without_plausible_year(raw):
    """Test dates lacking a real year are unknown, not filled in by the parser."""
    assert to_date(raw) == EPOCH_DATE
    assert to_date(raw, day_first=True) == EPOCH_DATE


def test_to_date_passthrough_and_idempotent():
    """Test date cells pass through and parsing is idempotent."""
    assert to_date(date(2024, 1, 15)) == date(2024, 1, 15)
    assert to_date(datetime(2024, 1, 15, 13, 30)) == date(2024, 1, 15)
    assert to_date(pd.Timestamp("2024-01-15")) == date(2024, 1, 15)

    parsed = to_date("15-JAN-2024")
    assert to_date(parsed) == parsed
    assert to_date(parsed.isoformat()) == parsed


def test_format_amount():
    """Test display formatting."""
    assert format_amount(Decimal("1234.5")) == "1,234.50"
    assert format_amount(-1234.5) == "-1,234.50"
    assert format_amount(0) == "0.00"
    assert format_amount(Decimal("-0")) == "0.00"
    assert format_amount(1000000) == "1,000,000.00"
    assert format_amount(Decimal("0.005")) == "0.01"


def test_sanitize_name():
    """Test path-unsafe characters are replaced."""
    assert sanitize_name("a/b:c") == "a_b_c"

    name = sanitize_name('Report  Q1 / "final" ?')
    assert not UNSAFE_NAME_CHARS & set(name)
    assert "__" not in name
    assert name == "Report_Q1_final_"


def test_sanitize_name_collapses_existing_underscores():
    assert sanitize_name("PAY__001 <draft>") == "PAY_001_draft_"


def test_strip_accents():
    """Test label normalization for Turkish text."""
    assert strip_accents("Ödeme Yapılacak  Taraf:") == "odeme yapilacak taraf:"
    assert strip_accents("İADE") == "iade"
    assert strip_accents("İzmir IŞIK") == "izmir isik"
    assert strip_accents("ıİ") == "ii"
    assert strip_accents(None) == ""
