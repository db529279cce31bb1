"""
Shared fixtures for the remittance reconciliation tests.
"""
import pytest

from remittance_recon.core.config import reset_settings
from remittance_recon.core.processing import LAYOUT_WIDTH, RemittanceColumn, build_processor
from remittance_recon.core.regions import build_default_registry
from remittance_recon.services.reconciliation_service import ReconciliationPipeline

SETTINGS_ENV_VARS = (
    "APP_NAME",
    "LOG_LEVEL",
    "DEFAULT_REGION",
    "REGIONS_FILE",
    "MAX_WORKERS",
    "HINT_MATCH_THRESHOLD",
    "BALANCE_TOLERANCE",
    "MATCH_AMOUNT_TOLERANCE",
    "MATCH_DATE_OFFSET_DAYS",
)

DEFAULT_ROW = {
    "payee": "ACME Dagitim A.S.",
    "supplier_number": "100234",
    "vendor_site": "ISTANBUL",
    "payment_number": "PAY-001",
    "payment_date": "15-JAN-2024",
    "currency": "TRY",
    "payment_amount": "1,000.00",
    "invoice_number": "INV-1001",
    "invoice_date": "10-JAN-2024",
    "description": "Goods",
    "discount": "0",
    "paid_amount": "1,000.00",
    "remaining_amount": "0",
    "category_hint": "",
}


def build_row(**fields):
    """Build a REMITTANCE_LAYOUT_V1 row from defaults plus overrides."""
    values = dict(DEFAULT_ROW, **fields)
    row = [None] * LAYOUT_WIDTH
    for column in RemittanceColumn:
        row[column] = values[column.name.lower()]
    return row


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate every test from the caller's environment."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def tr_config(registry):
    return registry.get_config("TR")


@pytest.fixture
def tr_processor(tr_config):
    return build_processor(tr_config)


@pytest.fixture
def pipeline(registry):
    return ReconciliationPipeline(registry)


TR_DISCLAIMER = "Bu e-posta, izlenmeyen bir hesaptan gönderilmiştir. Lütfen yanıtlamayınız."

TR_PAYMENT_LABELS = (
    "Ödeme yapılacak taraf:",
    "Tedarikçi Numaranız:",
    "Tedarikçi site adı:",
    "Ödeme numarası:",
    "Ödeme tarihi:",
    "Ödeme para birimi:",
    "Ödeme tutarı:",
)

TR_INVOICE_HEADER = (
    "Fatura Numarası",
    "Fatura Tarihi",
    "Fatura Açıklaması",
    "Uygulanan İndirim",
    "Ödenen Tutar",
    "Kalan Tutar",
)


def build_advice(payment_number="PAY-9", lines=None, payment_date="15-JAN-2024", amount="750.00"):
    """Build one pasted Turkish remittance advice section, ending with a blank row."""
    if lines is None:
        lines = [
            ("INV-1", "10-JAN-2024", "Goods", "0", "1,000.00", "0"),
            ("123SC", "11-JAN-2024", "Shortage", "0", "(250.00)", "0"),
        ]
    payment_values = (
        "ACME Dagitim A.S.", "100234", "ISTANBUL", payment_number, payment_date, "TRY", amount,
    )

    matrix = [[TR_DISCLAIMER], [None, None]]
    matrix += [[label, value] for label, value in zip(TR_PAYMENT_LABELS, payment_values)]
    matrix.append([None, None])
    matrix.append(list(TR_INVOICE_HEADER))
    matrix += [list(line) for line in lines]
    matrix.append([None] * len(TR_INVOICE_HEADER))
    return matrix


@pytest.fixture
def make_advice():
    return build_advice
