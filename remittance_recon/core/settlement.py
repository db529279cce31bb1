"""
Per-payment settlement summaries.

A remittance advice lists several invoice lines under one payment. The
running balance (credit - debit) across those lines is what the payer
actually transferred; it is reported here as one PaymentSummary per
payment instead of being injected into the record list.
"""
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from remittance_recon.core.classify import InvoiceClassifier
from remittance_recon.core.schema import InvoiceCategory, PaymentDirection, PaymentSummary, RemittanceRecord


def _default_reference(payment_number: str) -> str:
    return f"{InvoiceClassifier.transfer_prefix} {payment_number}"


def running_balances(records: Iterable[RemittanceRecord]) -> List[Decimal]:
    """Cumulative credit - debit after each record, in order."""
    balances = []
    balance = Decimal(0)
    for record in records:
        balance += record.credit_amount - record.debit_amount
        balances.append(balance)
    return balances


def summarize_payments(
    records: Iterable[RemittanceRecord],
    transfer_reference: Optional[Callable[[str], str]] = None
) -> Tuple[PaymentSummary, ...]:
    """
    Group records by payment and compute each payment's net transfer.

    Records without a payment number, and records that are themselves
    outgoing transfers, are left out. Groups keep first-appearance order.

    Args:
        records: Records in source order
        transfer_reference: Builds the transfer reference text from a
            payment number (region classifiers provide one)

    Returns:
        One PaymentSummary per (payment number, payment date)
    """
    transfer_reference = transfer_reference or _default_reference

    groups: Dict[Tuple[str, date], List[RemittanceRecord]] = {}
    for record in records:
        if not record.payment_number or record.category is InvoiceCategory.OUTGOING_TRANSFER:
            continue
        groups.setdefault((record.payment_number, record.payment_date), []).append(record)

    summaries = []
    for (payment_number, payment_date), group in groups.items():
        balances = running_balances(group)
        net_balance = balances[-1]
        first = group[0]
        summaries.append(
            PaymentSummary(
                payment_number=payment_number,
                payment_date=payment_date,
                payee_name=first.payee_name,
                currency=first.currency,
                line_count=len(group),
                net_balance=net_balance,
                transfer_amount=abs(net_balance),
                direction=PaymentDirection.OUTGOING if net_balance > 0 else PaymentDirection.INCOMING,
                transfer_reference=transfer_reference(payment_number),
                running_balances=tuple(balances),
            )
        )
    return tuple(summaries)
