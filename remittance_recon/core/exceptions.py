"""
Custom exceptions for better error handling.

Only batch-fatal conditions are exceptions. Row-level problems are
reported as RowRejection values and never raised past the processor.
"""
from typing import Any, Dict, Optional


class ReconciliationError(Exception):
    """Base exception for all remittance reconciliation errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.
        
        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigNotFoundError(ReconciliationError):
    """Raised when a region code has no registered configuration."""
    pass


class ConfigurationError(ReconciliationError):
    """Raised when region configuration data is invalid."""
    pass


class InvalidInputError(ReconciliationError):
    """Raised when the row collection is absent or not iterable."""
    pass


class ParsingError(ReconciliationError):
    """Raised when a worksheet has no recognizable remittance layout."""
    pass
