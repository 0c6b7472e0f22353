"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from bank_ledger.models.base import Base
from bank_ledger.models.enums import (
    AccountType,
    AccountStatus,
    TransactionType,
    OperationState,
)
from bank_ledger.models.account import Account
from bank_ledger.models.transaction import Transaction

__all__ = [
    "Base",
    "AccountType",
    "AccountStatus",
    "TransactionType",
    "OperationState",
    "Account",
    "Transaction",
]
