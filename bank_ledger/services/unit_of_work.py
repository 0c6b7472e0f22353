"""
Unit of work: one begin/commit-or-rollback pair.

    STARTED -> STORE_TX_OPEN -> APPLIED -> COMMITTED
                             -> FAILED  -> ROLLED_BACK

Leaving the block normally commits. Leaving it with any
exception (a ledger rejection, a store failure, even a
KeyboardInterrupt) rolls back. A commit that fails is also
rolled back. There is no exit that leaves a unit of work
half-applied.
"""

import logging

from bank_ledger.errors import StoreUnavailableError
from bank_ledger.models.enums import OperationState
from bank_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


class UnitOfWork:

    def __init__(self, store: LedgerStore, operation: str):
        self.store = store
        self.operation = operation
        self.state = OperationState.STARTED

    def _move(self, state: OperationState) -> None:
        logger.debug(
            "uow.transition",
            extra={
                "operation": self.operation,
                "from_state": self.state.value,
                "to_state": state.value,
            },
        )
        self.state = state

    def __enter__(self) -> "UnitOfWork":
        self.store.begin()
        self._move(OperationState.STORE_TX_OPEN)
        return self

    def mark_applied(self) -> None:
        """All balance changes and entries of this unit are in place."""
        self._move(OperationState.APPLIED)

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self._abort()
            return False

        try:
            self.store.commit()
        except StoreUnavailableError:
            self._abort()
            raise
        self._move(OperationState.COMMITTED)
        return False

    def _abort(self) -> None:
        self._move(OperationState.FAILED)
        self.store.rollback()
        self._move(OperationState.ROLLED_BACK)
