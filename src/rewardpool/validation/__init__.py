"""Validation and conservation audits for reward ledgers."""

from .audit import LedgerAuditor, PoolAudit, ValidationWarning, validate_ledger

__all__ = [
    "LedgerAuditor",
    "PoolAudit",
    "ValidationWarning",
    "validate_ledger"
]
