"""
Remittance advice worksheet extraction.

Payment advices arrive as e-mails pasted into a spreadsheet: a disclaimer,
a block of seven "label: value" payment lines, then an invoice table with
six columns. This module walks the decoded cell matrix and emits one
REMITTANCE_LAYOUT_V1 row per invoice line, ready for the pipeline.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from remittance_recon.core.exceptions import ParsingError
from remittance_recon.core.logger import setup_logger
from remittance_recon.core.processing import LAYOUT_WIDTH, RemittanceColumn
from remittance_recon.core.sanitize import is_present, strip_accents, to_text
from remittance_recon.core.schema import RegionConfig

logger = setup_logger(__name__)

# The disclaimer must appear in column A within this many rows
DISCLAIMER_SEARCH_ROWS = 40

PAYMENT_FIELDS = (
    RemittanceColumn.PAYEE,
    RemittanceColumn.SUPPLIER_NUMBER,
    RemittanceColumn.VENDOR_SITE,
    RemittanceColumn.PAYMENT_NUMBER,
    RemittanceColumn.PAYMENT_DATE,
    RemittanceColumn.CURRENCY,
    RemittanceColumn.PAYMENT_AMOUNT,
)

INVOICE_FIELDS = (
    RemittanceColumn.INVOICE_NUMBER,
    RemittanceColumn.INVOICE_DATE,
    RemittanceColumn.DESCRIPTION,
    RemittanceColumn.DISCOUNT,
    RemittanceColumn.PAID_AMOUNT,
    RemittanceColumn.REMAINING_AMOUNT,
)


class _Grid:
    """Bounds-checked access to a ragged matrix."""

    def __init__(self, matrix: Sequence[Any]):
        self.rows: List[List[Any]] = [list(row) if row is not None else [] for row in matrix]
        self.height = len(self.rows)
        self.width = max((len(row) for row in self.rows), default=0)

    def cell(self, r: int, c: int) -> Any:
        if 0 <= r < self.height and 0 <= c < len(self.rows[r]):
            return self.rows[r][c]
        return None

    def text(self, r: int, c: int) -> str:
        value = self.cell(r, c)
        return strip_accents(value) if is_present(value) else ""

    def find(self, start_row: int, predicate, column: Optional[int] = None) -> Optional[Tuple[int, int]]:
        """First (row, col) at or after start_row whose text satisfies predicate."""
        columns = [column] if column is not None else range(self.width)
        for r in range(max(start_row, 0), self.height):
            for c in columns:
                text = self.text(r, c)
                if text and predicate(text):
                    return r, c
        return None


def _first_present(row: List[Any], start: int) -> Tuple[Optional[int], Any]:
    for index in range(max(start, 0), len(row)):
        if is_present(row[index]):
            return index, row[index]
    return None, None


def _map_payment_label(label: Any, label_map: Dict[str, str]) -> Optional[RemittanceColumn]:
    normalized = strip_accents(label).replace(":", "").replace("-", " ").strip()
    for prefix, field in label_map.items():
        if normalized.startswith(prefix):
            return RemittanceColumn[field.upper()]
    return None


def extract_remittance_rows(matrix: Sequence[Any], config: RegionConfig) -> List[List[Any]]:
    """
    Extract invoice lines from a pasted remittance advice worksheet.

    Args:
        matrix: Decoded worksheet cells, row-major
        config: Region configuration carrying the e-mail markers

    Returns:
        Rows in REMITTANCE_LAYOUT_V1 order, payment fields repeated on
        every invoice line of the payment

    Raises:
        ParsingError: If the region has no markers, the disclaimer is
            missing, or no complete payment section is found
    """
    markers = config.markers
    if markers is None:
        raise ParsingError(
            f"Region {config.region_code} does not define remittance advice markers",
            details={"region_code": config.region_code}
        )

    grid = _Grid(matrix)
    disclaimer = strip_accents(markers.disclaimer)
    payment_marker = strip_accents(markers.payment_start)
    invoice_marker = strip_accents(markers.invoice_header)

    has_disclaimer = any(
        disclaimer in grid.text(r, 0) for r in range(min(DISCLAIMER_SEARCH_ROWS, grid.height))
    )
    if not has_disclaimer:
        raise ParsingError(
            "Invalid format: remittance disclaimer not found in column A",
            details={"region_code": config.region_code, "disclaimer": markers.disclaimer}
        )

    results: List[List[Any]] = []
    current_row = 0

    while current_row < grid.height:
        header = grid.find(current_row, lambda text: disclaimer in text)
        if header is None:
            break
        header_row, header_col = header

        payment_start = grid.find(header_row, lambda text: payment_marker in text, column=header_col)
        if payment_start is None:
            payment_start = grid.find(header_row, lambda text: payment_marker in text)
        if payment_start is None:
            current_row = header_row + 1
            continue
        payment_row = payment_start[0]

        payment_values = _read_payment_block(grid, payment_row, header_col, markers.payment_label_map)

        invoice_header = grid.find(payment_row, lambda text: text.startswith(invoice_marker))
        if invoice_header is None:
            current_row = payment_row + 1
            continue
        invoice_row, invoice_col = invoice_header

        table_cols = [
            c for c in range(invoice_col, grid.width) if is_present(grid.cell(invoice_row, c))
        ][:len(INVOICE_FIELDS)]
        if len(table_cols) < len(INVOICE_FIELDS):
            logger.debug(f"Invoice header at row {invoice_row} has only {len(table_cols)} columns")
            current_row = invoice_row + 1
            continue

        pointer = invoice_row + 1
        extracted_any = False
        while pointer < grid.height:
            values = [grid.cell(pointer, c) for c in table_cols]
            if not any(is_present(value) for value in values):
                break

            row: List[Any] = [""] * LAYOUT_WIDTH
            for column, value in payment_values.items():
                row[column] = value
            for column, value in zip(INVOICE_FIELDS, values):
                row[column] = "" if value is None else value
            results.append(row)

            extracted_any = True
            pointer += 1

        current_row = pointer + 1 if extracted_any else invoice_row + 1

    if not results:
        raise ParsingError(
            "No complete sections (payment + invoices) found",
            details={"region_code": config.region_code, "rows_scanned": grid.height}
        )

    logger.info(f"Extracted {len(results)} invoice lines from remittance worksheet ({grid.height} rows)")
    return results


def _read_payment_block(
    grid: _Grid,
    start_row: int,
    header_col: int,
    label_map: Dict[str, str]
) -> Dict[RemittanceColumn, str]:
    """Read the seven payment label/value lines below the payment marker."""
    values = {field: "" for field in PAYMENT_FIELDS}

    for offset, positional_field in enumerate(PAYMENT_FIELDS):
        r = start_row + offset
        if r >= grid.height:
            continue
        row = grid.rows[r]

        label_col, label = _first_present(row, header_col - 2)
        if label_col is None:
            label_col, label = _first_present(row, 0)
        if label_col is None:
            continue

        field = _map_payment_label(label, label_map) or positional_field
        _, value = _first_present(row, label_col + 1)
        if value is not None:
            values[field] = to_text(value)

    return values
