"""
Region configuration registry.

Region bundles (currency, date format, number separators, strategy names,
localized labels) are static, versioned data. A registry is built once,
explicitly, and handed to whoever needs it; it is read-only afterwards so
concurrent runs share it without locking.
"""
import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import ValidationError

from remittance_recon.core.config import get_settings
from remittance_recon.core.exceptions import ConfigNotFoundError, ConfigurationError
from remittance_recon.core.logger import setup_logger
from remittance_recon.core.schema import RegionConfig

logger = setup_logger(__name__)

REGION_DATA_VERSION = "1"

TR_CATEGORY_LABELS = {
    "outgoing_transfer": "Giden Havale",
    "coop_invoice": "Ticari Isbirligi Faturasi",
    "missing_actual_or_ban": "MISSING_ACTUAL_OR_BAN",
    "shortage_claim": "Eksik Miktar Kesinti Bildirimi",
    "shortage_claim_reversal": "Eksik Miktar Kesinti Bildirimi Ters kayit",
    "price_claim": "Fiyat Farki Kesinti Bildirimi",
    "price_claim_reversal": "Fiyat Farki Kesinti Bildirimi Ters Kayit",
    "shortage_invoice": "Eksik Miktar Kesinti Faturasi",
    "archived_shortage_invoice": "Arsiv Eksik Miktar Kesinti Faturasi",
    "price_invoice": "Fiyat Farki Kesinti Faturasi",
    "archived_price_invoice": "Arsiv Fiyat Farki Kesinti Faturasi",
    "wholesale_invoice": "Toptan Satis Faturasi",
    "return_invoice": "Iade Edilen Ürünler Için Kesilen Iade Faturasi",
    "aged_receivable_provision": "Vadesi Geçmis Alacak Provizyonu",
    "receivable_provision": "Alacak Provizyonu",
    "bank_fee": "Bank Ücreti",
    "crtr_refund": "CRTR Geri Ödemesi",
    "ar_invoice": "AR Faturasi",
    "dispute": "Amazon Itrazlari",
    "qpd_return": "QPD",
    "qpd_reversal": "QPD Ters Kayit",
    "dispute_payback": "Itraz Sonucu Geri Odeme",
    "unclassified": "Siniflandirilmamis",
}

BUILTIN_REGIONS: List[Dict[str, Any]] = [
    {
        "region_code": "TR",
        "region_name": "Türkiye",
        "currency": "TRY",
        "date_format": "DD-MMM-YYYY",
        "number_format": {"decimal_separator": ".", "thousands_separator": ","},
        "processor": "ofa_remittance",
        "classifier": "tr_invoice",
        "labels": {
            "payment_label": "Ödeme",
            "invoice_label": "Fatura",
            "disclaimer_text": "Bu e-posta, izlenmeyen bir hesaptan gönderilmiştir",
            "category_labels": TR_CATEGORY_LABELS,
        },
        "markers": {
            "disclaimer": "bu e-posta, izlenmeyen bir hesaptan gonderilmistir",
            "payment_start": "odeme yap",
            "invoice_header": "fatura nu",
            "payment_label_map": {
                "odeme yapilacak taraf": "payee",
                "tedarikci numaran": "supplier_number",
                "tedarikci site ad": "vendor_site",
                "odeme numarasi": "payment_number",
                "odeme tarihi": "payment_date",
                "odeme para birimi": "currency",
                "odeme tutari": "payment_amount",
            },
        },
    },
    {
        "region_code": "DE",
        "region_name": "Deutschland",
        "currency": "EUR",
        "date_format": "DD.MM.YYYY",
        "number_format": {"decimal_separator": ",", "thousands_separator": "."},
        "processor": "localized_remittance",
        "classifier": "generic_invoice",
        "labels": {"payment_label": "Zahlung", "invoice_label": "Rechnung"},
    },
    {
        "region_code": "UK",
        "region_name": "United Kingdom",
        "currency": "GBP",
        "date_format": "DD/MM/YYYY",
        "processor": "ofa_remittance",
        "classifier": "generic_invoice",
    },
    {
        "region_code": "US",
        "region_name": "United States",
        "currency": "USD",
        "date_format": "MM/DD/YYYY",
        "processor": "ofa_remittance",
        "classifier": "generic_invoice",
    },
]


class RegionRegistry:
    """Read-only lookup of region configurations by region code."""

    def __init__(self, configs: Iterable[RegionConfig]):
        """
        Build the lookup table.

        Args:
            configs: Region configurations; codes must be unique

        Raises:
            ConfigurationError: If two configurations share a region code
        """
        table: Dict[str, RegionConfig] = {}
        for config in configs:
            if config.region_code in table:
                raise ConfigurationError(
                    f"Duplicate region configuration: {config.region_code}",
                    details={"region_code": config.region_code}
                )
            table[config.region_code] = config
        self._configs = MappingProxyType(table)

    def get_config(self, region_code: str) -> RegionConfig:
        """
        Look up the configuration for a region.

        Args:
            region_code: Region code (case-insensitive)

        Returns:
            RegionConfig for the region

        Raises:
            ConfigNotFoundError: If the region is not registered
        """
        normalized = (region_code or "").strip().upper()
        config = self._configs.get(normalized)
        if config is None:
            raise ConfigNotFoundError(
                f"Region configuration not found for: {region_code}",
                details={
                    "region_code": region_code,
                    "supported_regions": sorted(self._configs),
                }
            )
        return config

    def get_supported_regions(self) -> FrozenSet[str]:
        """Registered region codes."""
        return frozenset(self._configs)

    def has_region(self, region_code: str) -> bool:
        return (region_code or "").strip().upper() in self._configs

    def configs(self) -> List[RegionConfig]:
        return list(self._configs.values())

    def __contains__(self, region_code: object) -> bool:
        return isinstance(region_code, str) and self.has_region(region_code)

    def __len__(self) -> int:
        return len(self._configs)


def parse_region_entries(entries: Iterable[Dict[str, Any]]) -> List[RegionConfig]:
    """
    Validate raw region entries into RegionConfig objects.

    Raises:
        ConfigurationError: If any entry is malformed
    """
    configs = []
    for index, entry in enumerate(entries):
        try:
            configs.append(RegionConfig.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid region configuration at position {index}",
                details={"entry": entry, "error": str(e)}
            )
    return configs


def load_region_file(path: str) -> List[Dict[str, Any]]:
    """
    Read region entries from a JSON document.

    Accepts either a list of entries or an object with a "regions" list
    (and an optional "version").

    Raises:
        ConfigurationError: If the file is missing or not valid region data
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(
            f"Regions file not found: {path}",
            details={"regions_file": path}
        )

    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Could not read regions file: {path}",
            details={"regions_file": path, "error": str(e)}
        )

    if isinstance(document, dict):
        logger.info(f"Loading regions file {file_path.name} (version={document.get('version', 'unversioned')})")
        document = document.get("regions")

    if not isinstance(document, list):
        raise ConfigurationError(
            "Regions file must contain a list of region entries",
            details={"regions_file": path}
        )
    return document


def build_default_registry(regions_file: Optional[str] = None) -> RegionRegistry:
    """
    Build the registry from the built-in regions plus an optional file.

    File entries replace built-in entries with the same region code.

    Args:
        regions_file: Path to a JSON regions file (defaults to settings.regions_file)

    Returns:
        RegionRegistry
    """
    regions_file = regions_file or get_settings().regions_file

    configs = {config.region_code: config for config in parse_region_entries(BUILTIN_REGIONS)}
    if regions_file:
        for config in parse_region_entries(load_region_file(regions_file)):
            if config.region_code in configs:
                logger.info(f"Region {config.region_code} overridden from {regions_file}")
            configs[config.region_code] = config

    registry = RegionRegistry(configs.values())
    logger.info(
        f"Region registry ready (data version {REGION_DATA_VERSION}): "
        f"{sorted(registry.get_supported_regions())}"
    )
    return registry
