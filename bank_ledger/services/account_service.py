"""
Account service: opening accounts and administering them.

Opening an account goes through the same store primitives as
the ledger engine: the row is inserted with a zero balance and
any initial deposit is applied with the conditional update plus
a Deposit entry, in one unit of work. An account's history
therefore always replays to its balance, from the first entry.
"""

import logging
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

from bank_ledger.errors import (
    AccountNotEligibleError,
    AccountNotFoundError,
    InvalidAmountError,
    InvalidStatusTransitionError,
)
from bank_ledger.models.account import Account, generate_account_number
from bank_ledger.models.enums import AccountStatus, AccountType, TransactionType
from bank_ledger.models.transaction import Transaction
from bank_ledger.money import ZERO, to_money
from bank_ledger.schemas.account import (
    AccountOpen,
    AccountRecord,
    AccountStatusUpdate,
)
from bank_ledger.services.unit_of_work import UnitOfWork
from bank_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


# Default annual interest rate (percent) per product.
DEFAULT_INTEREST_RATES: dict[AccountType, Decimal] = {
    AccountType.SAVINGS: Decimal("3.50"),
    AccountType.CHECKING: Decimal("0.50"),
    AccountType.FIXED_DEPOSIT: Decimal("6.00"),
}

MAX_ACCOUNT_NUMBER_ATTEMPTS = 5


class AccountService:

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _unique_account_number(self, store: LedgerStore) -> str:
        for _ in range(MAX_ACCOUNT_NUMBER_ATTEMPTS):
            number = generate_account_number()
            if not store.account_number_exists(number):
                return number
        raise RuntimeError("Could not generate a unique account number")

    def open_account(self, request: AccountOpen) -> AccountRecord:
        """
        Open a new active account, optionally funded.

        Raises InvalidAmountError for a negative or sub-cent
        initial deposit.
        """
        initial_deposit = to_money(request.initial_deposit)
        if initial_deposit < 0:
            raise InvalidAmountError(request.initial_deposit)

        with self.session_factory() as session:
            store = LedgerStore(session)
            with UnitOfWork(store, "open_account") as uow:
                account = store.insert_account(Account(
                    account_number=self._unique_account_number(store),
                    user_id=request.user_id,
                    account_type=request.account_type,
                    balance=ZERO,
                    interest_rate=DEFAULT_INTEREST_RATES[request.account_type],
                    status=AccountStatus.ACTIVE,
                ))

                if initial_deposit > 0:
                    new_balance = store.atomic_adjust_balance(
                        account.id, initial_deposit
                    )
                    if new_balance is None:
                        raise AccountNotEligibleError(
                            account.id, "account vanished during opening"
                        )
                    store.append_entry(Transaction(
                        account_id=account.id,
                        transaction_type=TransactionType.DEPOSIT,
                        amount=initial_deposit,
                        balance_after=new_balance,
                        description="Initial deposit",
                    ))
                    account = store.read_account(account.id)
                uow.mark_applied()

            record = AccountRecord.model_validate(account)

        logger.info(
            "account.opened",
            extra={
                "account_id": record.id,
                "account_number": record.account_number,
                "user_id": record.user_id,
                "initial_deposit": str(initial_deposit),
            },
        )
        return record

    def change_status(
        self, account_id: int, request: AccountStatusUpdate
    ) -> AccountRecord:
        """
        Move an account to a new status.

        Enforces the transition table in models.account. The row
        is locked first so a concurrent ledger operation sees
        either the old status or the new one, never a mix.
        """
        with self.session_factory() as session:
            store = LedgerStore(session)
            with UnitOfWork(store, "change_status") as uow:
                accounts = store.lock_accounts([account_id])
                if not accounts:
                    raise AccountNotFoundError(account_id)
                account = accounts[0]

                if not account.can_transition_to(request.new_status):
                    raise InvalidStatusTransitionError(
                        account.status.value, request.new_status.value
                    )

                old_status = account.status
                store.set_status(account_id, request.new_status)
                account = store.read_account(account_id)
                uow.mark_applied()

            record = AccountRecord.model_validate(account)

        logger.info(
            "account.status_changed",
            extra={
                "account_id": account_id,
                "old_status": old_status.value,
                "new_status": request.new_status.value,
                "reason": request.reason,
            },
        )
        return record

    def get_account(self, account_id: int) -> AccountRecord:
        """Get an account by ID."""
        with self.session_factory() as session:
            account = LedgerStore(session).read_account(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            return AccountRecord.model_validate(account)

    def get_account_by_number(self, account_number: str) -> AccountRecord:
        """Get an account by its customer-facing number."""
        with self.session_factory() as session:
            account = LedgerStore(session).read_account_by_number(account_number)
            if account is None:
                raise AccountNotFoundError(account_number)
            return AccountRecord.model_validate(account)

    def get_user_accounts(self, user_id: int) -> list[AccountRecord]:
        """All accounts owned by a user, oldest first."""
        with self.session_factory() as session:
            accounts = LedgerStore(session).accounts_for_user(user_id)
            return [AccountRecord.model_validate(a) for a in accounts]

    def get_total_balance(self, user_id: int) -> Decimal:
        """Sum of balances across all of a user's accounts."""
        with self.session_factory() as session:
            return LedgerStore(session).total_balance(user_id)

    def account_exists(self, account_number: str) -> bool:
        with self.session_factory() as session:
            return LedgerStore(session).account_number_exists(account_number)
