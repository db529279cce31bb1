"""
Row-to-record mapping.

A processor turns one decoded worksheet row, laid out per
REMITTANCE_LAYOUT_V1, into a RemittanceRecord or a RowRejection. It has
no side effects: no logging, no shared state, nothing raised for bad rows.

Processors are selected per region by name (see PROCESSORS).
"""
from collections.abc import Iterable, Mapping
from decimal import Decimal
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Type, Union

from remittance_recon.core.classify import CLASSIFIERS, InvoiceClassifier
from remittance_recon.core.exceptions import ConfigurationError
from remittance_recon.core.sanitize import (
    EPOCH_DATE,
    is_present,
    to_amount,
    to_date,
    to_text,
)
from remittance_recon.core.schema import (
    CurrencyCode,
    DataSource,
    RegionConfig,
    RejectionReason,
    RemittanceRecord,
    RowRejection,
    make_record_id,
)

LAYOUT_VERSION = "v1"


class RemittanceColumn(IntEnum):
    """Column positions of REMITTANCE_LAYOUT_V1."""
    PAYEE = 0
    SUPPLIER_NUMBER = 1
    VENDOR_SITE = 2
    PAYMENT_NUMBER = 3
    PAYMENT_DATE = 4
    CURRENCY = 5
    PAYMENT_AMOUNT = 6
    INVOICE_NUMBER = 7
    INVOICE_DATE = 8
    DESCRIPTION = 9
    DISCOUNT = 10
    PAID_AMOUNT = 11
    REMAINING_AMOUNT = 12
    CATEGORY_HINT = 13


REMITTANCE_LAYOUT_V1: Dict[int, str] = {column.value: column.name.lower() for column in RemittanceColumn}

# Reference number and amount
REQUIRED_COLUMNS = (RemittanceColumn.INVOICE_NUMBER, RemittanceColumn.PAID_AMOUNT)
REQUIRED_COLUMN_COUNT = max(REQUIRED_COLUMNS) + 1
LAYOUT_WIDTH = len(RemittanceColumn)

MappingResult = Union[RemittanceRecord, RowRejection]


def snapshot_row(row: Any) -> Tuple[Any, ...]:
    """
    Copy a raw row for a rejection.

    Never raises: a row that fails while being iterated is kept as its repr.
    """
    if isinstance(row, (str, bytes)) or isinstance(row, Mapping):
        return (row,)
    if isinstance(row, Iterable):
        try:
            return tuple(row)
        except Exception:
            return (repr(row),)
    return () if row is None else (row,)


def _reject(row_number: int, row: Any, reason: RejectionReason, message: str) -> RowRejection:
    return RowRejection(row_number=row_number, raw_row=snapshot_row(row), reason=reason, message=message)


class RemittanceProcessor:
    """Maps remittance rows whose amounts use "." as the decimal separator."""

    source = DataSource.OFA_REMITTANCE

    def __init__(self, classifier: InvoiceClassifier):
        self.classifier = classifier

    def normalize(self, row: Any, row_number: int, config: RegionConfig) -> MappingResult:
        """
        Map one raw row to a record.

        Args:
            row: Ordered cell values (list, tuple or any non-string iterable)
            row_number: 0-based position of the row in the matrix
            config: Region configuration for this run

        Returns:
            RemittanceRecord, or RowRejection when the row is not a sequence,
            is too short, or lacks a required value
        """
        if row is None or isinstance(row, (str, bytes, Mapping)) or not isinstance(row, Iterable):
            return _reject(
                row_number, row, RejectionReason.INVALID_ROW,
                f"Row {row_number} is not a sequence of cells"
            )

        cells = tuple(row)
        if len(cells) < REQUIRED_COLUMN_COUNT:
            return _reject(
                row_number, cells, RejectionReason.MISSING_REQUIRED_FIELD,
                f"Row {row_number} has {len(cells)} columns; at least {REQUIRED_COLUMN_COUNT} required"
            )

        missing = [REMITTANCE_LAYOUT_V1[column] for column in REQUIRED_COLUMNS if not is_present(cells[column])]
        if missing:
            return _reject(
                row_number, cells, RejectionReason.MISSING_REQUIRED_FIELD,
                f"Row {row_number} missing required field(s): {', '.join(missing)}"
            )

        cells = cells + (None,) * (LAYOUT_WIDTH - len(cells))
        record = self._build_record(cells, row_number, config)

        category, raw_category = self.classifier.classify(record)
        return record.model_copy(update={"category": category, "raw_category": raw_category})

    def amount_text(self, value: Any, config: RegionConfig) -> Any:
        """Prepare an amount cell for to_amount. Dot-decimal cells pass through."""
        return value

    def parse_amount(self, value: Any, config: RegionConfig) -> Decimal:
        return to_amount(self.amount_text(value, config))

    def split_credit_debit(
        self,
        paid_value: Any,
        discount: Decimal,
        config: RegionConfig
    ) -> Tuple[Decimal, Decimal]:
        """
        Split a paid amount into non-negative (credit, debit).

        A parenthesized paid amount is a debit, anything else a credit. A
        zero paid amount falls back to the discount's sign. Negative sides
        are moved to the opposite side.
        """
        paid_text = to_text(self.amount_text(paid_value, config))
        credit = Decimal(0)
        debit = Decimal(0)

        if paid_text.startswith("(") and paid_text.endswith(")"):
            debit = to_amount(paid_text[1:-1])
        else:
            credit = to_amount(paid_text)

        if credit == 0 and debit == 0 and discount != 0:
            if discount < 0:
                debit = abs(discount)
            else:
                credit = discount

        if credit < 0:
            debit += abs(credit)
            credit = Decimal(0)
        if debit < 0:
            credit += abs(debit)
            debit = Decimal(0)
        return credit, debit

    def resolve_currency(self, value: Any, config: RegionConfig) -> CurrencyCode:
        code = to_text(value).upper()
        if code in CurrencyCode.__members__:
            return CurrencyCode(code)
        return config.currency

    def _build_record(self, cells: Tuple[Any, ...], row_number: int, config: RegionConfig) -> RemittanceRecord:
        col = RemittanceColumn

        invoice_number = to_text(cells[col.INVOICE_NUMBER])
        description = to_text(cells[col.DESCRIPTION])
        payment_number = to_text(cells[col.PAYMENT_NUMBER])

        payment_date = to_date(cells[col.PAYMENT_DATE], day_first=config.day_first)
        invoice_date = to_date(cells[col.INVOICE_DATE], day_first=config.day_first)
        record_date = invoice_date if invoice_date != EPOCH_DATE else payment_date

        amount = self.parse_amount(cells[col.PAID_AMOUNT], config)
        discount = self.parse_amount(cells[col.DISCOUNT], config)
        credit, debit = self.split_credit_debit(cells[col.PAID_AMOUNT], discount, config)

        record_id = make_record_id(
            self.source.value, config.region_code, row_number,
            payment_number, invoice_number, amount, record_date.isoformat()
        )

        return RemittanceRecord(
            id=record_id,
            source=self.source,
            date=record_date,
            amount=amount,
            currency=self.resolve_currency(cells[col.CURRENCY], config),
            reference_number=invoice_number,
            description=description,
            row_number=row_number,
            payee_name=to_text(cells[col.PAYEE]),
            supplier_number=to_text(cells[col.SUPPLIER_NUMBER]),
            vendor_site_id=to_text(cells[col.VENDOR_SITE]),
            payment_number=payment_number,
            payment_date=payment_date,
            payment_amount=self.parse_amount(cells[col.PAYMENT_AMOUNT], config),
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            purchase_order_number=self.classifier.extract_purchase_order(description),
            discount_amount=discount,
            credit_amount=credit,
            debit_amount=debit,
            balance_amount=self.parse_amount(cells[col.REMAINING_AMOUNT], config),
            raw_category=to_text(cells[col.CATEGORY_HINT]),
        )


class LocalizedRemittanceProcessor(RemittanceProcessor):
    """
    Maps rows whose amounts follow the region's own number format.

    Amount text such as "1.234,50" is rewritten to "1234.50" before parsing.
    """

    def amount_text(self, value: Any, config: RegionConfig) -> Any:
        if not isinstance(value, str) or config.number_format.is_dot_decimal:
            return value

        number_format = config.number_format
        text = value
        if number_format.thousands_separator:
            text = text.replace(number_format.thousands_separator, "")
        return text.replace(number_format.decimal_separator, ".")


PROCESSORS: Dict[str, Type[RemittanceProcessor]] = {
    "ofa_remittance": RemittanceProcessor,
    "localized_remittance": LocalizedRemittanceProcessor,
}


def build_processor(config: RegionConfig, hint_threshold: Optional[float] = None) -> RemittanceProcessor:
    """
    Instantiate the processor and classifier a region names.

    Args:
        config: Region configuration
        hint_threshold: Similarity needed to accept a category hint

    Returns:
        Processor wired to the region's classifier

    Raises:
        ConfigurationError: If either strategy name is unknown
    """
    processor_cls = PROCESSORS.get(config.processor)
    if processor_cls is None:
        raise ConfigurationError(
            f"Unknown processor '{config.processor}' for region {config.region_code}",
            details={"region_code": config.region_code, "available": sorted(PROCESSORS)}
        )

    classifier_cls = CLASSIFIERS.get(config.classifier)
    if classifier_cls is None:
        raise ConfigurationError(
            f"Unknown classifier '{config.classifier}' for region {config.region_code}",
            details={"region_code": config.region_code, "available": sorted(CLASSIFIERS)}
        )

    kwargs = {"labels": config.labels}
    if hint_threshold is not None:
        kwargs["hint_threshold"] = hint_threshold
    return processor_cls(classifier_cls(**kwargs))
