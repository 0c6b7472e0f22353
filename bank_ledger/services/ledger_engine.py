"""
Ledger engine: deposits, withdrawals and transfers.

This service enforces the fundamental rules:
1. A balance only changes through the store's conditional
   update, never through a value computed in memory
2. Every balance change appends exactly one immutable entry
   per affected account, in the same unit of work
3. Only ACTIVE accounts can be debited or credited
4. Multi-account operations lock rows in ascending id order

The engine holds no state besides its session factory. Each
operation opens its own session, so one engine can be shared
by any number of threads; conflicting operations serialize
inside the database. Every operation may block on row locks
and must not be called from a UI rendering loop.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

from bank_ledger.config import Settings, get_settings
from bank_ledger.errors import (
    AccountNotEligibleError,
    AccountNotFoundError,
    BalanceLimitExceededError,
    DestinationNotEligibleError,
    InsufficientFundsError,
    LedgerError,
    SelfTransferError,
    TransactionNotFoundError,
)
from bank_ledger.models.enums import TransactionType
from bank_ledger.models.transaction import Transaction
from bank_ledger.money import MAX_AMOUNT, ZERO, positive_amount
from bank_ledger.schemas.ledger import (
    OperationResult,
    ReconciliationReport,
    TransactionRecord,
)
from bank_ledger.services.unit_of_work import UnitOfWork
from bank_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    All balance-mutating operations pass through this engine.

    Mutating operations return an OperationResult instead of
    raising for business failures: validation errors are reported
    before any store access, store-detected failures after the
    unit of work has been rolled back. Unexpected errors (bugs,
    corrupt data) still propagate as exceptions.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        store_class: type[LedgerStore] = LedgerStore,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.store_class = store_class
        self.history_limit = (settings or get_settings()).HISTORY_LIMIT

    @contextmanager
    def _open_store(self):
        with self.session_factory() as session:
            yield self.store_class(session)

    def _run(self, operation: str, work, **context) -> OperationResult:
        """Run one mutating operation and fold LedgerErrors into a result."""
        try:
            result = work()
        except LedgerError as e:
            logger.warning(
                f"ledger.{operation}.rejected",
                extra={**context, "error": e.kind.value, "reason": e.message},
            )
            return OperationResult.failure(e)

        logger.info(
            f"ledger.{operation}",
            extra={**context, "transaction_ids": result.transaction_ids},
        )
        return result

    def _debit_failure(
        self, store: LedgerStore, account_id: int, amount: Decimal
    ) -> LedgerError:
        """
        Explain why a conditional debit matched no row.

        Runs inside the still-open unit of work, just before it is
        rolled back.
        """
        account = store.read_account(account_id)
        if account is None:
            return AccountNotEligibleError(account_id, "account not found")
        if not account.is_active:
            return AccountNotEligibleError(
                account_id, f"status is {account.status.value}"
            )
        return InsufficientFundsError(account_id, amount, account.balance)

    def _credit_failure(
        self,
        store: LedgerStore,
        account_id: int,
        amount: Decimal,
        destination: bool = False,
    ) -> LedgerError:
        """Explain why a conditional credit matched no row."""
        account = store.read_account(account_id)
        if account is not None and account.is_active:
            return BalanceLimitExceededError(account_id, amount, MAX_AMOUNT)
        if destination:
            return DestinationNotEligibleError(account_id)
        if account is None:
            return AccountNotEligibleError(account_id, "account not found")
        return AccountNotEligibleError(
            account_id, f"status is {account.status.value}"
        )

    # --- Mutating operations ---

    def deposit(
        self, account_id: int, amount, description: str = "Deposit"
    ) -> OperationResult:
        """
        Credit an active account.

        The balance is raised by a conditional update that only
        matches an ACTIVE account; the entry records the balance
        returned by that same statement.
        """

        def work() -> OperationResult:
            value = positive_amount(amount)
            with self._open_store() as store:
                with UnitOfWork(store, "deposit") as uow:
                    new_balance = store.atomic_adjust_balance(account_id, value)
                    if new_balance is None:
                        raise self._credit_failure(store, account_id, value)

                    entry_id, _ = store.append_entry(Transaction(
                        account_id=account_id,
                        transaction_type=TransactionType.DEPOSIT,
                        amount=value,
                        balance_after=new_balance,
                        description=description,
                    ))
                    uow.mark_applied()

            return OperationResult.success({account_id: new_balance}, [entry_id])

        return self._run(
            "deposit", work, account_id=account_id, amount=str(amount)
        )

    def withdraw(
        self, account_id: int, amount, description: str = "Withdrawal"
    ) -> OperationResult:
        """
        Debit an active account that holds at least amount.

        Fails with ACCOUNT_NOT_ELIGIBLE when the account is missing or
        not active, and with INSUFFICIENT_FUNDS otherwise.
        """

        def work() -> OperationResult:
            value = positive_amount(amount)
            with self._open_store() as store:
                with UnitOfWork(store, "withdraw") as uow:
                    new_balance = store.atomic_adjust_balance(
                        account_id, -value, require_sufficient=True
                    )
                    if new_balance is None:
                        raise self._debit_failure(store, account_id, value)

                    entry_id, _ = store.append_entry(Transaction(
                        account_id=account_id,
                        transaction_type=TransactionType.WITHDRAWAL,
                        amount=value,
                        balance_after=new_balance,
                        description=description,
                    ))
                    uow.mark_applied()

            return OperationResult.success({account_id: new_balance}, [entry_id])

        return self._run(
            "withdraw", work, account_id=account_id, amount=str(amount)
        )

    def transfer(
        self,
        from_account_id: int,
        to_account_id: int,
        amount,
        description: str = "Transfer",
    ) -> OperationResult:
        """
        Move money between two accounts as one unit of work.

        Both rows are locked in ascending id order before either is
        touched. The debit uses the same conditional update as
        withdraw(), the credit the same one as deposit(). If the
        credit leg fails (destination not active, or its balance would
        pass MAX_AMOUNT), the rollback undoes the debit as well.

        On success exactly two entries exist: TRANSFER_OUT on the
        source and TRANSFER_IN on the destination, each naming the
        other account as counterpart.
        """

        def work() -> OperationResult:
            value = positive_amount(amount)
            if from_account_id == to_account_id:
                raise SelfTransferError(from_account_id)

            with self._open_store() as store:
                with UnitOfWork(store, "transfer") as uow:
                    locked = {
                        account.id: account
                        for account in store.lock_accounts(
                            [from_account_id, to_account_id]
                        )
                    }

                    from_balance = store.atomic_adjust_balance(
                        from_account_id, -value, require_sufficient=True
                    )
                    if from_balance is None:
                        raise self._debit_failure(store, from_account_id, value)

                    to_balance = store.atomic_adjust_balance(to_account_id, value)
                    if to_balance is None:
                        raise self._credit_failure(
                            store, to_account_id, value, destination=True
                        )

                    source = locked[from_account_id]
                    destination = locked[to_account_id]

                    out_id, _ = store.append_entry(Transaction(
                        account_id=from_account_id,
                        transaction_type=TransactionType.TRANSFER_OUT,
                        amount=value,
                        balance_after=from_balance,
                        description=f"{description} to {destination.account_number}",
                        related_account_id=to_account_id,
                    ))
                    in_id, _ = store.append_entry(Transaction(
                        account_id=to_account_id,
                        transaction_type=TransactionType.TRANSFER_IN,
                        amount=value,
                        balance_after=to_balance,
                        description=f"{description} from {source.account_number}",
                        related_account_id=from_account_id,
                    ))
                    uow.mark_applied()

            return OperationResult.success(
                {from_account_id: from_balance, to_account_id: to_balance},
                [out_id, in_id],
            )

        return self._run(
            "transfer",
            work,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=str(amount),
        )

    # --- Reads ---

    def get_transaction_history(
        self, account_id: int, limit: int | None = None
    ) -> list[TransactionRecord]:
        """Return an account's entries, newest first."""
        if limit is None:
            limit = self.history_limit
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        with self._open_store() as store:
            entries = store.list_entries(account_id, limit=limit)
            return [TransactionRecord.model_validate(e) for e in entries]

    def get_transaction(self, transaction_id: int) -> TransactionRecord:
        """Get a single ledger entry by ID."""
        with self._open_store() as store:
            entry = store.get_entry(transaction_id)
            if entry is None:
                raise TransactionNotFoundError(transaction_id)
            return TransactionRecord.model_validate(entry)

    def reconcile(self, account_id: int) -> ReconciliationReport:
        """
        Replay an account's entries and compare with its balance.

        The account row is share-locked for the duration of the read
        so the balance and the entries come from the same state.
        """
        with self._open_store() as store:
            with UnitOfWork(store, "reconcile"):
                accounts = store.lock_accounts([account_id], shared=True)
                if not accounts:
                    raise AccountNotFoundError(account_id)
                entries = store.list_entries(account_id, newest_first=False)

        replayed = sum((e.signed_amount for e in entries), ZERO)
        report = ReconciliationReport(
            account_id=account_id,
            balance=accounts[0].balance,
            replayed_balance=replayed,
            entry_count=len(entries),
            last_balance_after=entries[-1].balance_after if entries else None,
        )
        if not report.is_consistent:
            logger.error(
                "ledger.reconcile.mismatch",
                extra={
                    "account_id": account_id,
                    "balance": str(report.balance),
                    "replayed_balance": str(report.replayed_balance),
                },
            )
        return report

    def health_check(self) -> dict:
        """Report whether the ledger store is reachable."""
        with self._open_store() as store:
            db_status = "healthy" if store.ping() else "unhealthy"

        return {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "service": "bank-ledger",
            "database": db_status,
        }
