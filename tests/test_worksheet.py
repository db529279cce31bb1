"""
Tests for pasted remittance advice extraction.
"""
import pytest

from remittance_recon.core.exceptions import ParsingError
from remittance_recon.core.processing import LAYOUT_WIDTH, RemittanceColumn
from remittance_recon.core.worksheet import extract_remittance_rows


def test_extract_single_section(tr_config, make_advice):
    """Test payment fields are repeated on every invoice line."""
    rows = extract_remittance_rows(make_advice(), tr_config)

    assert len(rows) == 2
    first, second = rows
    assert len(first) == LAYOUT_WIDTH

    assert first[RemittanceColumn.PAYEE] == "ACME Dagitim A.S."
    assert first[RemittanceColumn.SUPPLIER_NUMBER] == "100234"
    assert first[RemittanceColumn.VENDOR_SITE] == "ISTANBUL"
    assert first[RemittanceColumn.PAYMENT_NUMBER] == "PAY-9"
    assert first[RemittanceColumn.PAYMENT_DATE] == "15-JAN-2024"
    assert first[RemittanceColumn.CURRENCY] == "TRY"
    assert first[RemittanceColumn.PAYMENT_AMOUNT] == "750.00"
    assert first[RemittanceColumn.INVOICE_NUMBER] == "INV-1"
    assert first[RemittanceColumn.PAID_AMOUNT] == "1,000.00"
    assert first[RemittanceColumn.CATEGORY_HINT] == ""

    assert second[RemittanceColumn.PAYMENT_NUMBER] == "PAY-9"
    assert second[RemittanceColumn.INVOICE_NUMBER] == "123SC"
    assert second[RemittanceColumn.PAID_AMOUNT] == "(250.00)"


def test_extract_multiple_sections(tr_config, make_advice):
    matrix = make_advice("PAY-1") + make_advice(
        "PAY-2", lines=[("INV-7", "12-FEB-2024", "Goods", "0", "80.00", "0")]
    )
    rows = extract_remittance_rows(matrix, tr_config)

    assert [row[RemittanceColumn.PAYMENT_NUMBER] for row in rows] == ["PAY-1", "PAY-1", "PAY-2"]
    assert rows[-1][RemittanceColumn.INVOICE_NUMBER] == "INV-7"


def test_missing_disclaimer(tr_config, make_advice):
    """Test worksheets without the disclaimer in column A are refused."""
    with pytest.raises(ParsingError) as exc_info:
        extract_remittance_rows(make_advice()[1:], tr_config)
    assert "disclaimer" in exc_info.value.message


def test_region_without_markers(registry, make_advice):
    with pytest.raises(ParsingError) as exc_info:
        extract_remittance_rows(make_advice(), registry.get_config("US"))
    assert exc_info.value.details["region_code"] == "US"


def test_no_invoice_table(tr_config, make_advice):
    """Test a payment block without an invoice table yields no rows."""
    matrix = make_advice()[:10]
    with pytest.raises(ParsingError):
        extract_remittance_rows(matrix, tr_config)


def test_empty_invoice_table(tr_config, make_advice):
    with pytest.raises(ParsingError):
        extract_remittance_rows(make_advice(lines=[]), tr_config)
