"""
Remittance reconciliation core.

Turns decoded remittance worksheet rows into typed, classified
transaction records ready for cross-system reconciliation.
"""
__version__ = "0.1.0"
