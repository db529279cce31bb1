"""
Tests for per-payment settlement summaries.
"""
from datetime import date
from decimal import Decimal

from remittance_recon.core.schema import InvoiceCategory, PaymentDirection
from remittance_recon.core.settlement import running_balances, summarize_payments


def _records(processor, config, rows):
    return [processor.normalize(row, i, config) for i, row in enumerate(rows)]


def test_running_balances(tr_processor, tr_config, make_row):
    records = _records(tr_processor, tr_config, [
        make_row(paid_amount="1,000.00"),
        make_row(invoice_number="123SC", paid_amount="(250.00)"),
    ])
    assert running_balances(records) == [Decimal("1000.00"), Decimal("750.00")]
    assert running_balances([]) == []


def test_summarize_payments(tr_processor, tr_config, make_row):
    """Test net transfer and direction per payment."""
    records = _records(tr_processor, tr_config, [
        make_row(paid_amount="1,000.00"),
        make_row(payment_number="PAY-002", invoice_number="INV-2", paid_amount="(100.00)"),
        make_row(invoice_number="123SC", paid_amount="(250.00)"),
    ])

    first, second = summarize_payments(records, tr_processor.classifier.transfer_reference)

    assert first.payment_number == "PAY-001"
    assert first.payment_date == date(2024, 1, 15)
    assert first.line_count == 2
    assert first.net_balance == Decimal("750.00")
    assert first.transfer_amount == Decimal("750.00")
    assert first.direction is PaymentDirection.OUTGOING
    assert first.running_balances == (Decimal("1000.00"), Decimal("750.00"))
    assert first.transfer_reference == "GIDEN HAVALE: PAY-001"
    assert first.payee_name == "ACME Dagitim A.S."

    assert second.payment_number == "PAY-002"
    assert second.net_balance == Decimal("-100.00")
    assert second.transfer_amount == Decimal("100.00")
    assert second.direction is PaymentDirection.INCOMING


def test_payments_split_by_date(tr_processor, tr_config, make_row):
    records = _records(tr_processor, tr_config, [
        make_row(payment_date="15-JAN-2024"),
        make_row(payment_date="16-JAN-2024"),
    ])
    summaries = summarize_payments(records)

    assert len(summaries) == 2
    assert summaries[0].transfer_reference == "OUTGOING TRANSFER: PAY-001"


def test_unsettled_records_skipped(tr_processor, tr_config, make_row):
    """Test records without a payment number or that are transfers are left out."""
    records = _records(tr_processor, tr_config, [
        make_row(payment_number=""),
        make_row(),
    ])
    transfer = records[1].model_copy(update={"category": InvoiceCategory.OUTGOING_TRANSFER})

    summaries = summarize_payments(records + [transfer])

    assert len(summaries) == 1
    assert summaries[0].line_count == 1
    assert summarize_payments([]) == ()
