"""
Unit tests for custom exceptions.
"""
from remittance_recon.core.exceptions import (
    ConfigNotFoundError,
    ConfigurationError,
    InvalidInputError,
    ParsingError,
    ReconciliationError,
)


def test_base_exception():
    """Test base exception class."""
    exc = ReconciliationError("Test error", details={"key": "value"})
    assert str(exc) == "Test error"
    assert exc.message == "Test error"
    assert exc.details == {"key": "value"}


def test_exception_hierarchy():
    """Test exception inheritance."""
    assert issubclass(ConfigNotFoundError, ReconciliationError)
    assert issubclass(ConfigurationError, ReconciliationError)
    assert issubclass(InvalidInputError, ReconciliationError)
    assert issubclass(ParsingError, ReconciliationError)


def test_exception_with_details():
    """Test exception with details dictionary."""
    exc = ConfigNotFoundError("Region configuration not found for: XX", details={"region_code": "XX"})
    assert exc.message == "Region configuration not found for: XX"
    assert exc.details["region_code"] == "XX"


def test_exception_without_details():
    """Test exception without details."""
    exc = InvalidInputError("Row collection is required")
    assert exc.message == "Row collection is required"
    assert exc.details == {}
