"""
Ledger store: the boundary between the ledger and the database.

A LedgerStore wraps exactly one SQLAlchemy session, which is
one unit of work at a time. Every balance mutation goes
through atomic_adjust_balance(), a single conditional
UPDATE ... RETURNING statement: the check (status, sufficient
funds) and the write happen in one step inside the database,
so two concurrent operations on the same account serialize
on the row instead of racing on a stale in-memory balance.

Connectivity failures, lock/statement timeouts, pool
exhaustion and other driver errors are translated to
StoreUnavailableError here and nowhere else. A violated
constraint (IntegrityError) propagates unchanged.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select, text, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from bank_ledger.errors import StoreUnavailableError
from bank_ledger.models.account import Account
from bank_ledger.models.base import utcnow
from bank_ledger.models.enums import AccountStatus
from bank_ledger.models.transaction import Transaction
from bank_ledger.money import MAX_AMOUNT

logger = logging.getLogger(__name__)

_UNAVAILABLE = (sa_exc.DBAPIError, sa_exc.TimeoutError)


class LedgerStore:
    """Transactional access to accounts and ledger entries."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except sa_exc.IntegrityError:
            raise
        except _UNAVAILABLE as e:
            cause = getattr(e, "orig", None) or e
            logger.error(
                "store.unavailable",
                extra={"action": action, "error": str(cause)},
            )
            raise StoreUnavailableError(f"{action} failed: {cause}") from e

    # --- Transaction boundary ---

    def begin(self) -> None:
        """Open the unit of work. Nested units of work are not supported."""
        if self.session.in_transaction():
            raise RuntimeError("A store transaction is already open")
        with self._guard("begin"):
            self.session.begin()

    def commit(self) -> None:
        with self._guard("commit"):
            self.session.commit()

    def rollback(self) -> None:
        with self._guard("rollback"):
            self.session.rollback()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            self.session.execute(text("SELECT 1"))
        except _UNAVAILABLE:
            return False
        finally:
            self.session.rollback()
        return True

    # --- Accounts ---

    def read_account(self, account_id: int) -> Account | None:
        """Read the committed (or own-transaction) state of an account."""
        with self._guard("read_account"):
            return self.session.get(
                Account, account_id, populate_existing=True
            )

    def read_account_by_number(self, account_number: str) -> Account | None:
        with self._guard("read_account_by_number"):
            return self.session.execute(
                select(Account)
                .where(Account.account_number == account_number)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()

    def lock_statement(self, account_ids, shared: bool = False) -> Select:
        """SELECT ... FOR UPDATE (or FOR SHARE) over account_ids, ascending."""
        return (
            select(Account)
            .where(Account.id.in_(sorted(set(account_ids))))
            .order_by(Account.id)
            .with_for_update(read=shared)
            .execution_options(populate_existing=True)
        )

    def lock_accounts(
        self, account_ids, shared: bool = False
    ) -> list[Account]:
        """
        Lock the given account rows in ascending id order.

        Every unit of work that touches more than one account must
        call this before mutating any of them. Because all callers
        acquire locks in the same order, two transfers between the
        same pair of accounts in opposite directions cannot deadlock.
        Missing ids are simply absent from the result.
        """
        stmt = self.lock_statement(account_ids, shared=shared)
        with self._guard("lock_accounts"):
            accounts = self.session.execute(stmt).scalars().all()
        return list(accounts)

    def atomic_adjust_balance(
        self,
        account_id: int,
        delta: Decimal,
        required_status: AccountStatus = AccountStatus.ACTIVE,
        require_sufficient: bool = False,
    ) -> Decimal | None:
        """
        Add delta to an account's balance in one conditional statement.

        The update only matches when the account exists, has
        required_status and, if require_sufficient is set and delta is
        negative, holds at least |delta|. A positive delta only matches
        while the result stays within MAX_AMOUNT. Returns the new
        balance, or None when no row matched.

        The session's identity map is not synchronized; callers use the
        returned balance, never a previously loaded Account.balance.
        """
        stmt = update(Account).where(
            Account.id == account_id,
            Account.status == required_status,
        )
        if require_sufficient and delta < 0:
            stmt = stmt.where(Account.balance >= -delta)
        if delta > 0:
            stmt = stmt.where(Account.balance <= MAX_AMOUNT - delta)
        stmt = (
            stmt.values(balance=Account.balance + delta)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        )

        with self._guard("atomic_adjust_balance"):
            return self.session.execute(stmt).scalar_one_or_none()

    def set_status(self, account_id: int, status: AccountStatus) -> None:
        with self._guard("set_status"):
            self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(status=status)
                .execution_options(synchronize_session=False)
            )

    def insert_account(self, account: Account) -> Account:
        with self._guard("insert_account"):
            self.session.add(account)
            self.session.flush()
        return account

    def account_number_exists(self, account_number: str) -> bool:
        with self._guard("account_number_exists"):
            found = self.session.execute(
                select(Account.id).where(Account.account_number == account_number)
            ).first()
        return found is not None

    def accounts_for_user(self, user_id: int) -> list[Account]:
        with self._guard("accounts_for_user"):
            accounts = self.session.execute(
                select(Account)
                .where(Account.user_id == user_id)
                .order_by(Account.created_at, Account.id)
            ).scalars().all()
        return list(accounts)

    def total_balance(self, user_id: int) -> Decimal:
        with self._guard("total_balance"):
            return self.session.execute(
                select(func.coalesce(func.sum(Account.balance), 0))
                .where(Account.user_id == user_id)
            ).scalar_one()

    # --- Ledger entries ---

    def append_entry(self, entry: Transaction) -> tuple[int, datetime]:
        """
        Append one immutable entry and return its assigned id and timestamp.

        The entry becomes durable only when the surrounding unit of work
        commits.
        """
        if entry.created_at is None:
            entry.created_at = utcnow()
        with self._guard("append_entry"):
            self.session.add(entry)
            self.session.flush()
        return entry.id, entry.created_at

    def list_entries(
        self,
        account_id: int,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[Transaction]:
        # Ids are assigned while the account row is locked, so id order
        # is commit order for one account. created_at is wall-clock only.
        ordering = Transaction.id.desc() if newest_first else Transaction.id.asc()

        stmt = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(ordering)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._guard("list_entries"):
            entries = self.session.execute(stmt).scalars().all()
        return list(entries)

    def get_entry(self, transaction_id: int) -> Transaction | None:
        with self._guard("get_entry"):
            return self.session.get(Transaction, transaction_id)
