"""
Core processing modules for remittance reconciliation.

This package contains:
- config: Application configuration and settings
- exceptions: Custom exception classes
- logger: Logging configuration
- sanitize: Primitive cell sanitizers (text, amounts, dates, names)
- schema: Pydantic models for records, region configs and batch results
- regions: Region configuration registry
- classify: Invoice category classifiers
- processing: Row-to-record mapping strategies
- worksheet: Remittance advice worksheet section extraction
- settlement: Per-payment running balance and transfer summaries
- matching: Shortage invoice to wholesale invoice matching
"""
