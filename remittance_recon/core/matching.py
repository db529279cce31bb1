"""
Three-way matching of shortage invoices to wholesale sales lines.

A shortage invoice deducts from an earlier wholesale invoice. Both lines
carry the parent invoice id in the last characters of their description,
and usually a purchase-order number. Candidate parents are wholesale lines
dated at least the configured offset after the shortage invoice whose
amount is within the configured tolerance.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from remittance_recon.core.config import get_settings
from remittance_recon.core.logger import setup_logger
from remittance_recon.core.sanitize import EPOCH_DATE, to_text
from remittance_recon.core.schema import InvoiceCategory, RemittanceRecord, ShortageMatch

logger = setup_logger(__name__)

PARENT_ID_LENGTH = 16


class SalesLine(NamedTuple):
    """Wholesale invoice line reduced to its matching keys."""
    parent_id: str
    purchase_order_number: str
    amount: Decimal
    date: Optional[date]


def extract_parent_id(description: object) -> str:
    """
    Parent invoice id embedded at the end of a description.

    Args:
        description: Free-text line description

    Returns:
        Last PARENT_ID_LENGTH characters, trimmed
    """
    return to_text(description)[-PARENT_ID_LENGTH:].strip()


def line_amount(record: RemittanceRecord) -> Decimal:
    """Unsigned amount of a line: its debit, else its credit."""
    return record.debit_amount or record.credit_amount


def make_match_key(purchase_order_number: str, amount: Decimal) -> str:
    return f"{purchase_order_number}#{amount:.2f}"


def _known_date(value: date) -> Optional[date]:
    return None if value == EPOCH_DATE else value


def build_sales_index(records: Iterable[RemittanceRecord]) -> List[SalesLine]:
    """Index the wholesale invoice lines of a batch."""
    return [
        SalesLine(
            parent_id=extract_parent_id(record.description),
            purchase_order_number=record.purchase_order_number,
            amount=line_amount(record),
            date=_known_date(record.invoice_date),
        )
        for record in records
        if record.category is InvoiceCategory.WHOLESALE_INVOICE
    ]


def build_parent_po_map(index: Iterable[SalesLine]) -> Dict[str, str]:
    """Parent invoice id -> purchase order, from lines that carry both."""
    return {
        line.parent_id: line.purchase_order_number
        for line in index
        if line.parent_id and line.purchase_order_number
    }


def find_candidates(
    index: Iterable[SalesLine],
    purchase_order_number: str,
    amount: Decimal,
    min_date: Optional[date],
    tolerance: Decimal,
    strict_po: bool = True
) -> Tuple[str, ...]:
    """
    Parent ids of the sales lines that could settle a shortage amount.

    Args:
        index: Wholesale sales lines
        purchase_order_number: Purchase order of the shortage invoice
        amount: Unsigned shortage amount
        min_date: Earliest acceptable sales date (None matches nothing)
        tolerance: Largest accepted amount difference
        strict_po: Require the same purchase order when one is known

    Returns:
        Parent ids in index order
    """
    if min_date is None:
        return ()

    candidates = []
    for line in index:
        if line.date is None or line.date < min_date:
            continue
        if abs(line.amount - amount) > tolerance:
            continue
        if strict_po and purchase_order_number and line.purchase_order_number != purchase_order_number:
            continue
        if line.parent_id:
            candidates.append(line.parent_id)
    return tuple(candidates)


def match_shortage_invoices(
    records: Iterable[RemittanceRecord],
    amount_tolerance: Optional[float] = None,
    date_offset_days: Optional[int] = None
) -> Tuple[ShortageMatch, ...]:
    """
    Match every shortage invoice of a batch to candidate wholesale invoices.

    A shortage invoice without its own purchase order borrows the one of the
    wholesale line sharing its parent id.

    Args:
        records: Classified records of one batch
        amount_tolerance: Defaults to settings.match_amount_tolerance
        date_offset_days: Defaults to settings.match_date_offset_days

    Returns:
        One ShortageMatch per shortage invoice, in record order
    """
    settings = get_settings()
    if amount_tolerance is None:
        amount_tolerance = settings.match_amount_tolerance
    if date_offset_days is None:
        date_offset_days = settings.match_date_offset_days
    tolerance = Decimal(str(amount_tolerance))

    records = list(records)
    index = build_sales_index(records)
    parent_po_map = build_parent_po_map(index)

    matches = []
    for record in records:
        if record.category is not InvoiceCategory.SHORTAGE_INVOICE:
            continue

        parent_id = extract_parent_id(record.description)
        purchase_order_number = record.purchase_order_number or parent_po_map.get(parent_id, "")
        amount = line_amount(record)
        invoice_date = _known_date(record.invoice_date)
        min_date = invoice_date + timedelta(days=date_offset_days) if invoice_date else None

        matches.append(
            ShortageMatch(
                record=record,
                purchase_order_number=purchase_order_number,
                parent_invoice_candidate=parent_id,
                amount=amount,
                match_key=make_match_key(purchase_order_number, amount),
                matched_parents=find_candidates(index, purchase_order_number, amount, min_date, tolerance),
                loose_matches=find_candidates(
                    index, purchase_order_number, amount, min_date, tolerance, strict_po=False
                ),
            )
        )

    if matches:
        matched = sum(1 for match in matches if match.is_matched)
        logger.info(
            f"Matched {matched}/{len(matches)} shortage invoices against {len(index)} wholesale lines"
        )
    return tuple(matches)
