"""
Batch reconciliation service.
Runs every row of a decoded matrix through its region's processor and
collects records and rejections in source row order.
"""
import asyncio
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from remittance_recon.core.config import get_settings
from remittance_recon.core.exceptions import InvalidInputError
from remittance_recon.core.logger import setup_logger
from remittance_recon.core.matching import match_shortage_invoices
from remittance_recon.core.processing import (
    LAYOUT_VERSION,
    MappingResult,
    RemittanceProcessor,
    build_processor,
    snapshot_row,
)
from remittance_recon.core.regions import RegionRegistry
from remittance_recon.core.schema import (
    BatchResult,
    RegionConfig,
    RejectionReason,
    RemittanceRecord,
    RowRejection,
)
from remittance_recon.core.settlement import summarize_payments
from remittance_recon.core.worksheet import extract_remittance_rows

logger = setup_logger(__name__)


def materialize_rows(rows: Any) -> List[Any]:
    """
    Turn the caller's row collection into a list of rows.

    A DataFrame contributes its rows in order with missing cells as None.

    Raises:
        InvalidInputError: If rows is absent, a string/mapping, or not iterable
    """
    if rows is None:
        raise InvalidInputError("Row collection is required")

    if isinstance(rows, pd.DataFrame):
        frame = rows.astype(object).where(rows.notna(), None)
        return frame.values.tolist()

    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise InvalidInputError(
            "Row collection must be an iterable of rows",
            details={"type": type(rows).__name__}
        )
    return list(rows)


class ReconciliationPipeline:
    """Service for turning remittance rows into classified records."""

    def __init__(
        self,
        registry: RegionRegistry,
        max_workers: Optional[int] = None,
        hint_threshold: Optional[float] = None
    ):
        """
        Initialize the pipeline.

        Strategies for every registered region are built up front, so an
        unknown processor or classifier name fails here, not mid-batch.

        Args:
            registry: Region configurations for this process
            max_workers: Row-mapping threads (defaults to settings.max_workers)
            hint_threshold: Category hint similarity (defaults to settings)

        Raises:
            ConfigurationError: If a region names an unknown strategy
        """
        self.settings = get_settings()
        self.registry = registry
        self.max_workers = max_workers or self.settings.max_workers
        if hint_threshold is None:
            hint_threshold = self.settings.hint_match_threshold

        self._processors: Dict[str, RemittanceProcessor] = {
            config.region_code: build_processor(config, hint_threshold)
            for config in registry.configs()
        }
        logger.info(
            f"{self.settings.app_name} pipeline ready: layout {LAYOUT_VERSION}, "
            f"regions {sorted(self._processors)}, workers={self.max_workers}"
        )

    def resolve(self, region_code: Optional[str] = None) -> Tuple[RegionConfig, RemittanceProcessor]:
        """
        Resolve a region's configuration and processor.

        Raises:
            ConfigNotFoundError: If the region is not registered
        """
        config = self.registry.get_config(region_code or self.settings.default_region)
        return config, self._processors[config.region_code]

    def map_row(
        self,
        processor: RemittanceProcessor,
        config: RegionConfig,
        row: Any,
        row_number: int
    ) -> MappingResult:
        """
        Map one row, converting any unexpected failure into a rejection.

        One-shot iterators are copied first so the rejection snapshot still
        holds their cells.
        """
        try:
            if isinstance(row, Iterator):
                row = tuple(row)
            return processor.normalize(row, row_number, config)
        except Exception as e:
            logger.error(f"Row {row_number} failed in {config.processor}: {e}", exc_info=True)
            return _processing_error(row_number, row, e)

    def run(self, rows: Any, region_code: Optional[str] = None) -> BatchResult:
        """
        Process a full matrix of rows for one region.

        Rows are mapped on a thread pool when max_workers > 1; the result
        keeps source row order either way. Row failures never abort the batch.

        Args:
            rows: Row-major cells, header already removed (list of rows or DataFrame)
            region_code: Region to process for (defaults to settings.default_region)

        Returns:
            BatchResult with records, rejections, payment summaries and
            shortage invoice matches

        Raises:
            ConfigNotFoundError: If the region is not registered
            InvalidInputError: If rows is absent or not iterable
        """
        config, processor = self.resolve(region_code)
        matrix = materialize_rows(rows)

        logger.info(
            f"Processing {len(matrix)} rows for region {config.region_code} "
            f"(processor={config.processor}, classifier={config.classifier}, workers={self.max_workers})"
        )

        if self.max_workers > 1 and len(matrix) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(
                    lambda item: self.map_row(processor, config, item[1], item[0]),
                    enumerate(matrix)
                ))
        else:
            results = [
                self.map_row(processor, config, row, row_number)
                for row_number, row in enumerate(matrix)
            ]

        return self._collect(config, processor, results)

    async def run_async(self, rows: Any, region_code: Optional[str] = None) -> BatchResult:
        """
        Process a matrix with rows mapped concurrently in the default executor.

        Concurrency is bounded by max_workers. Same ordering and failure
        semantics as run().
        """
        config, processor = self.resolve(region_code)
        matrix = materialize_rows(rows)
        semaphore = asyncio.Semaphore(self.max_workers)
        loop = asyncio.get_running_loop()

        logger.info(f"Processing {len(matrix)} rows for region {config.region_code} (async)")

        async def process_single(row: Any, row_number: int) -> MappingResult:
            async with semaphore:
                return await loop.run_in_executor(None, self.map_row, processor, config, row, row_number)

        tasks = [process_single(row, i) for i, row in enumerate(matrix)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Convert exceptions to rejections
        processed_results: List[MappingResult] = []
        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(f"Row {i} failed: {result}")
                processed_results.append(_processing_error(i, matrix[i], result))
            else:
                processed_results.append(result)

        return self._collect(config, processor, processed_results)

    def run_worksheet(self, matrix: Sequence[Any], region_code: Optional[str] = None) -> BatchResult:
        """
        Extract invoice lines from a pasted remittance advice and process them.

        Raises:
            ConfigNotFoundError: If the region is not registered
            ParsingError: If the worksheet has no remittance sections
        """
        config, _ = self.resolve(region_code)
        rows = extract_remittance_rows(materialize_rows(matrix), config)
        return self.run(rows, config.region_code)

    def _collect(
        self,
        config: RegionConfig,
        processor: RemittanceProcessor,
        results: List[MappingResult]
    ) -> BatchResult:
        records: List[RemittanceRecord] = []
        rejections: List[RowRejection] = []

        for result in results:
            if isinstance(result, RowRejection):
                logger.debug(f"Rejected row {result.row_number}: {result.reason.value} - {result.message}")
                rejections.append(result)
            else:
                records.append(result)

        batch = BatchResult(
            region_code=config.region_code,
            records=tuple(records),
            rejections=tuple(rejections),
            payments=summarize_payments(records, processor.classifier.transfer_reference),
            shortage_matches=match_shortage_invoices(records),
        )

        zero_amounts = sum(1 for record in records if record.amount == 0)
        if zero_amounts:
            logger.warning(f"{zero_amounts} records have a zero amount (unparseable or blank source value)")

        unbalanced = [
            record.row_number for record in records
            if not record.is_balanced(self.settings.balance_tolerance)
        ]
        if unbalanced:
            logger.debug(f"Rows whose balance does not match their movements: {unbalanced}")

        logger.info(f"Batch complete: {batch.summary()}")
        return batch


def _processing_error(row_number: int, row: Any, error: BaseException) -> RowRejection:
    return RowRejection(
        row_number=row_number,
        raw_row=snapshot_row(row),
        reason=RejectionReason.PROCESSING_ERROR,
        message=f"Row {row_number} could not be processed: {error}",
    )
