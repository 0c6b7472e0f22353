"""Caller-facing schemas."""

from bank_ledger.schemas.account import (
    AccountOpen,
    AccountRecord,
    AccountStatusUpdate,
)
from bank_ledger.schemas.ledger import (
    OperationResult,
    ReconciliationReport,
    TransactionRecord,
)

__all__ = [
    "AccountOpen",
    "AccountRecord",
    "AccountStatusUpdate",
    "OperationResult",
    "ReconciliationReport",
    "TransactionRecord",
]
