"""
Service layer for remittance reconciliation.
Contains business logic orchestration.
"""
from remittance_recon.services.reconciliation_service import ReconciliationPipeline

__all__ = ["ReconciliationPipeline"]
