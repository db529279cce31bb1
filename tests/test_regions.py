"""
Unit tests for the region configuration registry.
"""
import json

import pytest
from pydantic import ValidationError

from remittance_recon.core.exceptions import ConfigNotFoundError, ConfigurationError
from remittance_recon.core.regions import (
    BUILTIN_REGIONS,
    RegionRegistry,
    build_default_registry,
    parse_region_entries,
)
from remittance_recon.core.schema import CurrencyCode, InvoiceCategory


def test_builtin_regions(registry):
    """Test the built-in regions are registered."""
    assert registry.get_supported_regions() == frozenset({"TR", "DE", "UK", "US"})
    assert len(registry) == 4


def test_get_config_case_insensitive(registry):
    """Test lookups ignore case and surrounding blanks."""
    config = registry.get_config(" tr ")
    assert config.region_code == "TR"
    assert config.currency is CurrencyCode.TRY
    assert config.processor == "ofa_remittance"
    assert config.classifier == "tr_invoice"
    assert "tr" in registry
    assert registry.has_region("Us")


def test_get_config_unknown_region(registry):
    """Test unknown regions raise ConfigNotFoundError."""
    with pytest.raises(ConfigNotFoundError) as exc_info:
        registry.get_config("XX")
    assert exc_info.value.details["region_code"] == "XX"
    assert "TR" in exc_info.value.details["supported_regions"]
    assert "XX" not in registry


def test_config_is_immutable(registry):
    """Test configs cannot be modified after loading."""
    config = registry.get_config("TR")
    with pytest.raises(ValidationError):
        config.currency = CurrencyCode.USD
    with pytest.raises(AttributeError):
        registry.get_supported_regions().add("FR")


def test_region_details(registry):
    """Test date and number format details of built-in regions."""
    tr = registry.get_config("TR")
    de = registry.get_config("DE")
    us = registry.get_config("US")

    assert tr.day_first
    assert de.day_first
    assert not us.day_first
    assert de.number_format.decimal_separator == ","
    assert not de.number_format.is_dot_decimal
    assert tr.markers is not None
    assert us.markers is None
    assert tr.labels.category_label(InvoiceCategory.OUTGOING_TRANSFER) == "Giden Havale"
    assert us.labels.category_label(InvoiceCategory.BANK_FEE) == "Bank fee"


def test_duplicate_region_rejected():
    """Test two configs with the same code are refused."""
    configs = parse_region_entries([BUILTIN_REGIONS[0], BUILTIN_REGIONS[0]])
    with pytest.raises(ConfigurationError):
        RegionRegistry(configs)


def test_invalid_region_entry():
    """Test malformed entries raise ConfigurationError."""
    with pytest.raises(ConfigurationError) as exc_info:
        parse_region_entries([{"region_code": "FR", "currency": "FRF"}])
    assert "error" in exc_info.value.details


def test_invalid_payment_label_map():
    """Test label maps may only name payment fields."""
    entry = dict(BUILTIN_REGIONS[0])
    entry["markers"] = dict(entry["markers"], payment_label_map={"odeme": "invoice_number"})
    with pytest.raises(ConfigurationError):
        parse_region_entries([entry])


def test_regions_file_merges_over_builtin(tmp_path):
    """Test a regions file adds and overrides regions."""
    regions_file = tmp_path / "regions.json"
    regions_file.write_text(json.dumps({
        "version": "2",
        "regions": [
            {
                "region_code": "jp",
                "currency": "JPY",
                "date_format": "YYYY/MM/DD",
                "processor": "ofa_remittance",
                "classifier": "generic_invoice",
            },
            {
                "region_code": "US",
                "region_name": "USA",
                "currency": "USD",
                "date_format": "MM/DD/YYYY",
                "processor": "ofa_remittance",
                "classifier": "tr_invoice",
            },
        ],
    }), encoding="utf-8")

    registry = build_default_registry(str(regions_file))
    assert registry.get_supported_regions() == frozenset({"TR", "DE", "UK", "US", "JP"})
    assert registry.get_config("jp").currency is CurrencyCode.JPY
    assert registry.get_config("US").classifier == "tr_invoice"


def test_regions_file_from_settings(tmp_path, monkeypatch):
    """Test the regions file path is taken from settings by default."""
    regions_file = tmp_path / "regions.json"
    regions_file.write_text(json.dumps([
        {
            "region_code": "EU",
            "currency": "EUR",
            "date_format": "DD/MM/YYYY",
            "processor": "localized_remittance",
            "classifier": "generic_invoice",
            "number_format": {"decimal_separator": ",", "thousands_separator": " "},
        }
    ]), encoding="utf-8")
    monkeypatch.setenv("REGIONS_FILE", str(regions_file))

    registry = build_default_registry()
    assert registry.has_region("EU")


def test_regions_file_missing(tmp_path):
    """Test a missing regions file is a configuration error."""
    with pytest.raises(ConfigurationError):
        build_default_registry(str(tmp_path / "missing.json"))


def test_regions_file_not_a_list(tmp_path):
    """Test a regions file must hold a list of entries."""
    regions_file = tmp_path / "regions.json"
    regions_file.write_text(json.dumps({"regions": {"TR": {}}}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        build_default_registry(str(regions_file))
