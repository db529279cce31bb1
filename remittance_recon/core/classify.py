"""
Rule-based invoice categorization.

Rules are checked in order against the upper-cased invoice number and
description; the first match wins. Every classifier is total: when no rule
matches, a category hint carried by the row is tried, and otherwise the
line is UNCLASSIFIED.

Classifiers are selected per region by name (see CLASSIFIERS).
"""
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import Levenshtein

from remittance_recon.core.sanitize import strip_accents, to_text
from remittance_recon.core.schema import InvoiceCategory, RegionLabels

Rule = Tuple[InvoiceCategory, Callable[[str, str], bool]]

# Warehouse codes that appear in Turkish purchase-order references
TR_WAREHOUSE_CODES = [
    "IST", "XSA8", "IST1", "IST2", "XTRB", "XTRA", "XTRD",
    "PTRA", "XTRC", "PSR2", "VECR", "VEGX", "XSA9",
]

_TR_PURCHASE_ORDER = re.compile(
    r"([A-Z0-9]+)/(IST2|XSA8|XTRA|XTRD|XTRC|IST1|IST|XTRB|PTRA|PSR2|VECR|VEGX|XSA9)/"
)
_GENERIC_PURCHASE_ORDER = re.compile(r"([A-Z0-9]+)/([A-Z0-9]{3,4})/")
_COOP_REFERENCE = re.compile(r"\bC1[A-Z0-9]{14}\b")
_RETURN_REFERENCE = re.compile(r"\bV[A-Z0-9]{15}\b")
_REVISION_SUFFIX = re.compile(r"R(\d{1,2})$")


# ─────────────────────────────────────────────────────────────
# Shared predicates
# ─────────────────────────────────────────────────────────────

def _is_shortage_claim(invoice: str, description: str) -> bool:
    return invoice.endswith("SC")


def _is_shortage_claim_reversal(invoice: str, description: str) -> bool:
    return invoice.endswith("SCR") or invoice.endswith("SCRI")


def _is_price_claim(invoice: str, description: str) -> bool:
    return invoice.endswith("PC") or "FOR PPV" in description


def _is_price_claim_reversal(invoice: str, description: str) -> bool:
    return (
        invoice.endswith("PCR")
        or invoice.endswith("PCRI")
        or "PRICE CLAIM REVERSAL" in description
    )


def _is_missing_actual(invoice: str, description: str) -> bool:
    return "MISSING_ACTUAL_OR_BAN" in description or "MISSING_ACTUAL_OR_BAN" in invoice


def _is_wholesale_invoice(invoice: str, description: str) -> bool:
    return len(invoice) == 16 and any(code in description for code in TR_WAREHOUSE_CODES)


def _is_coop_invoice(invoice: str, description: str) -> bool:
    prefix = invoice[:2]
    has_keywords = "FOR TRANSACTION" in description or "DSPT" in description

    if has_keywords and _COOP_REFERENCE.search(description):
        return True
    if prefix in ("C1", "C0"):
        return True
    if any(key in description for key in ("VOLUME INCENTIVE", "CO-OP", "AVS", "SPA")):
        return True
    if "DSPT" in invoice and "C1" in description:
        return True

    revision = _REVISION_SUFFIX.search(invoice)
    if revision and 1 <= int(revision.group(1)) <= 12:
        if "C0" in description or "C1" in description:
            return True
    return False


def _is_return_invoice(invoice: str, description: str) -> bool:
    if invoice[:2] in ("V1", "V0"):
        return True

    has_keywords = "FOR TRANSACTION" in description or "DSPT" in description
    if has_keywords and _RETURN_REFERENCE.search(description):
        return True

    mentions_return_ref = "V1" in description or "V0" in description
    if _REVISION_SUFFIX.search(invoice) and mentions_return_ref:
        return True
    if "VRET" in description or "RETURNS" in description:
        return True
    if "DSPT" in invoice and mentions_return_ref:
        return True
    return False


def _is_aged_provision(invoice: str, description: str) -> bool:
    return "PROVISION_FOR_AGED_" in invoice


def _is_receivable_provision(invoice: str, description: str) -> bool:
    return "PROVISION_FOR_RECEIVABLE" in invoice or "PROVISION_FOR_ACCRUAL" in invoice


def _contains(text: str) -> Callable[[str, str], bool]:
    return lambda invoice, description: text in description


def _invoice_contains(text: str) -> Callable[[str, str], bool]:
    return lambda invoice, description: text in invoice


def _invoice_starts(text: str) -> Callable[[str, str], bool]:
    return lambda invoice, description: invoice.startswith(text)


def _is_crtr_refund(invoice: str, description: str) -> bool:
    marker = "CREATING PARENT INVOICE VIA TR"
    return "CRTR" in description or marker in invoice or marker in description


def _is_dispute(invoice: str, description: str) -> bool:
    return "DSPT" in description and "DSPT" not in invoice


# ─────────────────────────────────────────────────────────────
# Classifiers
# ─────────────────────────────────────────────────────────────

class InvoiceClassifier(ABC):
    """
    Base classifier: ordered rules plus hint fallback.

    Subclasses provide the rule list, the outgoing-transfer prefix and the
    purchase-order pattern.
    """

    transfer_prefix = "OUTGOING TRANSFER:"
    purchase_order_pattern = _GENERIC_PURCHASE_ORDER

    def __init__(self, labels: Optional[RegionLabels] = None, hint_threshold: float = 0.85):
        self.labels = labels or RegionLabels()
        self.hint_threshold = hint_threshold
        self._rules = self.build_rules()
        self._hint_candidates = self._build_hint_candidates()

    @abstractmethod
    def build_rules(self) -> List[Rule]:
        """Ordered (category, predicate) rules; the first match wins."""

    def classify(self, record: Any) -> Tuple[InvoiceCategory, str]:
        """
        Assign a category to a record.

        Args:
            record: Anything with reference_number, description and an
                optional raw_category hint

        Returns:
            (category, raw category label)
        """
        hint = to_text(getattr(record, "raw_category", ""))
        category = self.classify_text(
            getattr(record, "reference_number", ""),
            getattr(record, "description", ""),
        )

        if category is InvoiceCategory.UNCLASSIFIED and hint:
            category = self.match_hint(hint) or category

        raw_label = hint or self.labels.category_label(category)
        return category, raw_label

    def classify_text(self, invoice_number: Any, description: Any) -> InvoiceCategory:
        """Apply the rule list to an invoice number and description."""
        invoice = to_text(invoice_number).upper()
        text = to_text(description).upper()

        for category, predicate in self._rules:
            if predicate(invoice, text):
                return category
        return InvoiceCategory.UNCLASSIFIED

    def match_hint(self, hint: str) -> Optional[InvoiceCategory]:
        """
        Resolve a free-text category hint to a category.

        Matches the category code or any of its labels, ignoring accents and
        case; near misses are accepted above the similarity threshold.
        """
        normalized = strip_accents(hint)
        if not normalized:
            return None

        best: Optional[InvoiceCategory] = None
        best_score = 0.0
        for candidate, category in self._hint_candidates:
            if candidate == normalized:
                return category
            score = Levenshtein.ratio(normalized, candidate)
            if score > best_score:
                best, best_score = category, score

        if best is not None and best_score >= self.hint_threshold:
            return best
        return None

    def extract_purchase_order(self, description: Any) -> str:
        """Purchase-order number embedded in a description, or ""."""
        match = self.purchase_order_pattern.search(to_text(description))
        return match.group(1) if match else ""

    def transfer_reference(self, payment_number: str) -> str:
        """Reference text for the outgoing transfer that settles a payment."""
        return f"{self.transfer_prefix} {payment_number}"

    def _build_hint_candidates(self) -> List[Tuple[str, InvoiceCategory]]:
        candidates = []
        for category in InvoiceCategory:
            for text in (
                category.value,
                category.value.replace("_", " "),
                self.labels.category_label(category),
            ):
                normalized = strip_accents(text)
                if normalized:
                    candidates.append((normalized, category))
        return candidates


class TrInvoiceClassifier(InvoiceClassifier):
    """Categories for Turkish vendor remittance advices."""

    transfer_prefix = "GIDEN HAVALE:"
    purchase_order_pattern = _TR_PURCHASE_ORDER

    def build_rules(self) -> List[Rule]:
        return [
            (InvoiceCategory.OUTGOING_TRANSFER, _invoice_starts(self.transfer_prefix)),
            (InvoiceCategory.COOP_INVOICE, _contains("FLEXIBLEAGREEMENTS")),
            (InvoiceCategory.MISSING_ACTUAL_OR_BAN, _is_missing_actual),
            (InvoiceCategory.SHORTAGE_CLAIM, _is_shortage_claim),
            (InvoiceCategory.SHORTAGE_CLAIM_REVERSAL, _is_shortage_claim_reversal),
            (InvoiceCategory.PRICE_CLAIM, _is_price_claim),
            (InvoiceCategory.PRICE_CLAIM_REVERSAL, _is_price_claim_reversal),
            (InvoiceCategory.SHORTAGE_INVOICE, _invoice_contains("IQV")),
            (InvoiceCategory.ARCHIVED_SHORTAGE_INVOICE, _invoice_contains("AQV")),
            (InvoiceCategory.PRICE_INVOICE, _invoice_starts("IPV")),
            (InvoiceCategory.ARCHIVED_PRICE_INVOICE, _invoice_starts("APV")),
            (InvoiceCategory.WHOLESALE_INVOICE, _is_wholesale_invoice),
            (InvoiceCategory.COOP_INVOICE, _is_coop_invoice),
            (InvoiceCategory.RETURN_INVOICE, _is_return_invoice),
            (InvoiceCategory.AGED_RECEIVABLE_PROVISION, _is_aged_provision),
            (InvoiceCategory.RECEIVABLE_PROVISION, _is_receivable_provision),
            (InvoiceCategory.BANK_FEE, _contains("BANK FEE")),
            (InvoiceCategory.CRTR_REFUND, _is_crtr_refund),
            (InvoiceCategory.AR_INVOICE, _contains("DFP FOR AR INVOICE")),
            (InvoiceCategory.DISPUTE, _is_dispute),
            (InvoiceCategory.QPD_RETURN, _contains("QPD RETURN INVOICE")),
            (InvoiceCategory.QPD_REVERSAL, _contains("CLEARING INVOICE AGANIST QPD")),
            (InvoiceCategory.DISPUTE_PAYBACK, _contains("PAYBACK")),
        ]


class GenericInvoiceClassifier(InvoiceClassifier):
    """Reference-suffix and English keyword rules for other markets."""

    def build_rules(self) -> List[Rule]:
        return [
            (InvoiceCategory.OUTGOING_TRANSFER, _invoice_starts(self.transfer_prefix)),
            (InvoiceCategory.MISSING_ACTUAL_OR_BAN, _is_missing_actual),
            (InvoiceCategory.SHORTAGE_CLAIM, _is_shortage_claim),
            (InvoiceCategory.SHORTAGE_CLAIM_REVERSAL, _is_shortage_claim_reversal),
            (InvoiceCategory.PRICE_CLAIM, _is_price_claim),
            (InvoiceCategory.PRICE_CLAIM_REVERSAL, _is_price_claim_reversal),
            (InvoiceCategory.SHORTAGE_INVOICE, _invoice_contains("IQV")),
            (InvoiceCategory.ARCHIVED_SHORTAGE_INVOICE, _invoice_contains("AQV")),
            (InvoiceCategory.PRICE_INVOICE, _invoice_starts("IPV")),
            (InvoiceCategory.ARCHIVED_PRICE_INVOICE, _invoice_starts("APV")),
            (InvoiceCategory.COOP_INVOICE, _is_coop_invoice),
            (InvoiceCategory.RETURN_INVOICE, _is_return_invoice),
            (InvoiceCategory.AGED_RECEIVABLE_PROVISION, _is_aged_provision),
            (InvoiceCategory.RECEIVABLE_PROVISION, _is_receivable_provision),
            (InvoiceCategory.BANK_FEE, _contains("BANK FEE")),
            (InvoiceCategory.AR_INVOICE, _contains("DFP FOR AR INVOICE")),
            (InvoiceCategory.DISPUTE, _is_dispute),
            (InvoiceCategory.QPD_RETURN, _contains("QPD RETURN INVOICE")),
            (InvoiceCategory.DISPUTE_PAYBACK, _contains("PAYBACK")),
        ]


CLASSIFIERS: Dict[str, Type[InvoiceClassifier]] = {
    "tr_invoice": TrInvoiceClassifier,
    "generic_invoice": GenericInvoiceClassifier,
}
