"""
Pydantic schemas for region configuration, transaction records and batch results.
All models are frozen: configs are shared read-only across a run and
records are final at the presentation boundary.
"""
import hashlib
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from remittance_recon.core.sanitize import EPOCH_DATE, format_amount


class CurrencyCode(str, Enum):
    """Currencies a record may carry."""
    TRY = "TRY"
    EUR = "EUR"
    GBP = "GBP"
    USD = "USD"
    JPY = "JPY"


class DataSource(str, Enum):
    """Upstream system a record was read from."""
    OFA_REMITTANCE = "OFA_REMITTANCE"
    FINOPS = "FINOPS"
    VENDOR_STATEMENT = "VENDOR_STATEMENT"


class InvoiceCategory(str, Enum):
    """Business category assigned to a remittance line."""
    OUTGOING_TRANSFER = "outgoing_transfer"
    COOP_INVOICE = "coop_invoice"
    MISSING_ACTUAL_OR_BAN = "missing_actual_or_ban"
    SHORTAGE_CLAIM = "shortage_claim"
    SHORTAGE_CLAIM_REVERSAL = "shortage_claim_reversal"
    PRICE_CLAIM = "price_claim"
    PRICE_CLAIM_REVERSAL = "price_claim_reversal"
    SHORTAGE_INVOICE = "shortage_invoice"
    ARCHIVED_SHORTAGE_INVOICE = "archived_shortage_invoice"
    PRICE_INVOICE = "price_invoice"
    ARCHIVED_PRICE_INVOICE = "archived_price_invoice"
    WHOLESALE_INVOICE = "wholesale_invoice"
    RETURN_INVOICE = "return_invoice"
    AGED_RECEIVABLE_PROVISION = "aged_receivable_provision"
    RECEIVABLE_PROVISION = "receivable_provision"
    BANK_FEE = "bank_fee"
    CRTR_REFUND = "crtr_refund"
    AR_INVOICE = "ar_invoice"
    DISPUTE = "dispute"
    QPD_RETURN = "qpd_return"
    QPD_REVERSAL = "qpd_reversal"
    DISPUTE_PAYBACK = "dispute_payback"
    UNCLASSIFIED = "unclassified"

    @property
    def default_label(self) -> str:
        """Human-readable English label."""
        return self.value.replace("_", " ").capitalize()


PAYMENT_LABEL_FIELDS = frozenset({
    "payee", "supplier_number", "vendor_site", "payment_number",
    "payment_date", "currency", "payment_amount",
})


class PaymentDirection(str, Enum):
    """Which way the net transfer of a payment flows."""
    OUTGOING = "outgoing"
    INCOMING = "incoming"


class RejectionReason(str, Enum):
    """Why a row produced no record."""
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_ROW = "InvalidRow"
    PROCESSING_ERROR = "ProcessingError"


# ─────────────────────────────────────────────────────────────
# Region configuration
# ─────────────────────────────────────────────────────────────

class NumberFormat(BaseModel):
    """Separators used by a region's amount cells."""
    model_config = ConfigDict(frozen=True)

    decimal_separator: str = "."
    thousands_separator: str = ","

    @field_validator("decimal_separator", "thousands_separator")
    @classmethod
    def validate_separator(cls, v):
        if len(v) > 1:
            raise ValueError("Separators must be a single character or empty")
        return v

    @property
    def is_dot_decimal(self) -> bool:
        return self.decimal_separator == "."


class RegionLabels(BaseModel):
    """Localized labels shown alongside a region's results."""
    model_config = ConfigDict(frozen=True)

    payment_label: str = "Payment"
    invoice_label: str = "Invoice"
    disclaimer_text: str = ""
    category_labels: Dict[InvoiceCategory, str] = Field(default_factory=dict)

    def category_label(self, category: InvoiceCategory) -> str:
        """Localized label for a category, English default when unset."""
        return self.category_labels.get(category, category.default_label)


class RemittanceMarkers(BaseModel):
    """
    Text markers for reading a pasted remittance advice e-mail.

    All marker text is compared after accent stripping and lower-casing.
    """
    model_config = ConfigDict(frozen=True)

    disclaimer: str
    payment_start: str
    invoice_header: str
    # accent-stripped label prefix -> payment field name
    payment_label_map: Dict[str, str] = Field(default_factory=dict)

    @field_validator("payment_label_map")
    @classmethod
    def validate_payment_fields(cls, v):
        unknown = sorted(set(v.values()) - PAYMENT_LABEL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown payment fields in label map: {unknown}")
        return v


class RegionConfig(BaseModel):
    """Immutable per-region settings bundle, keyed by region code."""
    model_config = ConfigDict(frozen=True)

    region_code: str
    region_name: str = ""
    currency: CurrencyCode
    date_format: str
    number_format: NumberFormat = Field(default_factory=NumberFormat)
    processor: str
    classifier: str
    labels: RegionLabels = Field(default_factory=RegionLabels)
    markers: Optional[RemittanceMarkers] = None

    @field_validator("region_code")
    @classmethod
    def normalize_region_code(cls, v):
        v = v.strip().upper()
        if not v:
            raise ValueError("Region code must not be empty")
        return v

    @property
    def day_first(self) -> bool:
        """Whether ambiguous numeric dates are read day-first."""
        return self.date_format.upper().startswith("DD")


# ─────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────

def make_record_id(*parts: Any) -> str:
    """Deterministic record identity from its identifying fields."""
    raw_key = "|".join(str(part) for part in parts)
    return hashlib.sha1(raw_key.encode("utf-8")).hexdigest()


class TransactionRecord(BaseModel):
    """Normalized transaction common to every data source."""
    model_config = ConfigDict(frozen=True)

    id: str
    source: DataSource
    date: date
    amount: Decimal
    currency: CurrencyCode
    reference_number: str
    description: str = ""

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if not v.is_finite():
            raise ValueError("Amount must be a finite decimal")
        return v

    @property
    def has_unknown_date(self) -> bool:
        return self.date == EPOCH_DATE


class RemittanceRecord(TransactionRecord):
    """One invoice line of a remittance advice."""
    row_number: int
    payee_name: str = ""
    supplier_number: str = ""
    vendor_site_id: str = ""
    payment_number: str = ""
    payment_date: date = EPOCH_DATE
    payment_amount: Decimal = Decimal(0)
    invoice_number: str = ""
    invoice_date: date = EPOCH_DATE
    purchase_order_number: str = ""
    discount_amount: Decimal = Decimal(0)
    credit_amount: Decimal = Decimal(0)
    debit_amount: Decimal = Decimal(0)
    balance_amount: Decimal = Decimal(0)
    category: InvoiceCategory = InvoiceCategory.UNCLASSIFIED
    raw_category: str = ""

    @property
    def has_unknown_dates(self) -> bool:
        """True when any date field is the unknown-date sentinel."""
        return EPOCH_DATE in (self.date, self.payment_date, self.invoice_date)

    def balance_discrepancy(self) -> Decimal:
        """
        Diagnostic difference between the line's movements and its balance.

        Not enforced anywhere in the pipeline.
        """
        return self.discount_amount + self.credit_amount - self.debit_amount - self.balance_amount

    def is_balanced(self, tolerance: float = 0.01) -> bool:
        return abs(self.balance_discrepancy()) <= Decimal(str(tolerance))

    def to_display_dict(self, labels: Optional[RegionLabels] = None) -> Dict[str, Any]:
        """Flatten into display strings; amounts formatted, dates ISO or blank."""
        labels = labels or RegionLabels()

        def show_date(value: date) -> str:
            return "" if value == EPOCH_DATE else value.isoformat()

        return {
            "row_number": self.row_number,
            "payee_name": self.payee_name,
            "currency": self.currency.value,
            "vendor_site_id": self.vendor_site_id,
            "payment_number": self.payment_number,
            "payment_date": show_date(self.payment_date),
            "category": labels.category_label(self.category),
            "invoice_number": self.invoice_number,
            "invoice_date": show_date(self.invoice_date),
            "purchase_order_number": self.purchase_order_number,
            "description": self.description,
            "discount_amount": format_amount(self.discount_amount),
            "credit_amount": format_amount(self.credit_amount),
            "debit_amount": format_amount(self.debit_amount),
            "balance_amount": format_amount(self.balance_amount),
        }


class RowRejection(BaseModel):
    """A row that produced no record, kept with its reason."""
    model_config = ConfigDict(frozen=True)

    row_number: int
    raw_row: Tuple[Any, ...] = ()
    reason: RejectionReason
    message: str


class PaymentSummary(BaseModel):
    """Net settlement of one payment across its invoice lines."""
    model_config = ConfigDict(frozen=True)

    payment_number: str
    payment_date: date
    payee_name: str = ""
    currency: CurrencyCode
    line_count: int
    net_balance: Decimal
    transfer_amount: Decimal
    direction: PaymentDirection
    transfer_reference: str
    running_balances: Tuple[Decimal, ...] = ()


class ShortageMatch(BaseModel):
    """Wholesale invoices a shortage invoice may deduct from."""
    model_config = ConfigDict(frozen=True)

    record: RemittanceRecord
    purchase_order_number: str = ""
    parent_invoice_candidate: str = ""
    amount: Decimal
    match_key: str
    # Same purchase order, amount within tolerance, dated after the offset
    matched_parents: Tuple[str, ...] = ()
    # As above, ignoring the purchase order
    loose_matches: Tuple[str, ...] = ()

    @property
    def is_matched(self) -> bool:
        return bool(self.matched_parents)


class BatchResult(BaseModel):
    """Outcome of one pipeline run. Sequences follow source row order."""
    model_config = ConfigDict(frozen=True)

    region_code: str
    records: Tuple[RemittanceRecord, ...] = ()
    rejections: Tuple[RowRejection, ...] = ()
    payments: Tuple[PaymentSummary, ...] = ()
    shortage_matches: Tuple[ShortageMatch, ...] = ()

    @property
    def accepted_count(self) -> int:
        return len(self.records)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    @property
    def total_rows(self) -> int:
        return self.accepted_count + self.rejected_count

    def summary(self) -> Dict[str, Any]:
        """Counts for logging and display."""
        reasons: Dict[str, int] = {}
        for rejection in self.rejections:
            reasons[rejection.reason.value] = reasons.get(rejection.reason.value, 0) + 1
        return {
            "region_code": self.region_code,
            "total_rows": self.total_rows,
            "accepted": self.accepted_count,
            "rejected": self.rejected_count,
            "rejection_reasons": reasons,
            "payments": len(self.payments),
            "shortage_matches": sum(1 for match in self.shortage_matches if match.is_matched),
        }

    def records_frame(self) -> pd.DataFrame:
        """Records as a DataFrame, one column per record field."""
        rows: List[Dict[str, Any]] = [record.model_dump(mode="python") for record in self.records]
        columns = list(RemittanceRecord.model_fields.keys())
        return pd.DataFrame(rows, columns=columns)

    def rejections_frame(self) -> pd.DataFrame:
        """Rejections as a DataFrame."""
        rows = [
            {
                "row_number": rejection.row_number,
                "reason": rejection.reason.value,
                "message": rejection.message,
                "raw_row": list(rejection.raw_row),
            }
            for rejection in self.rejections
        ]
        return pd.DataFrame(rows, columns=["row_number", "reason", "message", "raw_row"])
