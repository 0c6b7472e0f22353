"""
Pydantic schemas for ledger operations.

These define the contract with the caller (the UI/service
layer). They are separate from the database models so that
rows loaded in one unit of work can be handed out without
dragging a session along.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, PrivateAttr

from bank_ledger.errors import ErrorKind, LedgerError
from bank_ledger.models.enums import TransactionType


class TransactionRecord(BaseModel):
    """One ledger entry as returned to callers."""
    id: int
    account_id: int
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal
    description: str
    related_account_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReconciliationReport(BaseModel):
    """Result of replaying an account's entries against its balance."""
    account_id: int
    balance: Decimal
    replayed_balance: Decimal
    entry_count: int
    last_balance_after: Decimal | None

    @property
    def is_consistent(self) -> bool:
        if self.balance != self.replayed_balance:
            return False
        if self.last_balance_after is None:
            return self.entry_count == 0
        return self.last_balance_after == self.balance


class OperationResult(BaseModel):
    """
    Outcome of a mutating ledger operation.

    Exactly one of two shapes: ok=True with the resulting
    balances and new entry ids, or ok=False with an error kind.
    Callers must check ok (or call raise_for_error()); the
    absence of an exception does not mean success.
    """
    ok: bool
    error: ErrorKind | None = None
    message: str = ""
    retryable: bool = False
    balances: dict[int, Decimal] = Field(default_factory=dict)
    transaction_ids: list[int] = Field(default_factory=list)

    _exception: LedgerError | None = PrivateAttr(default=None)

    @classmethod
    def success(
        cls,
        balances: dict[int, Decimal],
        transaction_ids: list[int],
    ) -> "OperationResult":
        return cls(ok=True, balances=balances, transaction_ids=transaction_ids)

    @classmethod
    def failure(cls, exc: LedgerError) -> "OperationResult":
        result = cls(
            ok=False,
            error=exc.kind,
            message=exc.message,
            retryable=exc.retryable,
        )
        result._exception = exc
        return result

    def balance_of(self, account_id: int) -> Decimal:
        return self.balances[account_id]

    def raise_for_error(self) -> None:
        """Re-raise the typed LedgerError behind a failed result."""
        if self._exception is not None:
            raise self._exception
