"""
Concurrency tests for the LedgerEngine.

One engine instance is shared by several threads, each
operation getting its own session. The database serializes
conflicting units of work; the engine must neither deadlock
nor lose an update.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from sqlalchemy.dialects import postgresql

from bank_ledger.errors import ErrorKind
from bank_ledger.services.ledger_engine import LedgerEngine
from bank_ledger.store import LedgerStore


def test_opposite_transfers_both_commit(ledger, account_service, open_account):
    a = open_account("100.00")
    b = open_account("100.00")
    barrier = threading.Barrier(2)

    def run(src, dst, amount):
        barrier.wait()
        return ledger.transfer(src, dst, Decimal(amount))

    with ThreadPoolExecutor(max_workers=2) as pool:
        forward = pool.submit(run, a.id, b.id, "10.00")
        backward = pool.submit(run, b.id, a.id, "5.00")
        results = [forward.result(timeout=30), backward.result(timeout=30)]

    assert all(r.ok for r in results), [r.message for r in results]
    assert account_service.get_account(a.id).balance == Decimal("95.00")
    assert account_service.get_account(b.id).balance == Decimal("105.00")


def test_concurrent_deposits_lose_no_update(ledger, account_service, open_account):
    account = open_account("0.00")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(
            lambda _: ledger.deposit(account.id, Decimal("1.25")), range(40)
        ))

    assert all(r.ok for r in results)
    assert account_service.get_account(account.id).balance == Decimal("50.00")

    report = ledger.reconcile(account.id)
    assert report.entry_count == 40
    assert report.is_consistent


def test_concurrent_withdrawals_never_overdraw(ledger, account_service, open_account):
    account = open_account("10.00")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(
            lambda _: ledger.withdraw(account.id, Decimal("1.00")), range(25)
        ))

    succeeded = [r for r in results if r.ok]
    rejected = [r for r in results if not r.ok]

    assert len(succeeded) == 10
    assert all(r.error == ErrorKind.INSUFFICIENT_FUNDS for r in rejected)
    assert account_service.get_account(account.id).balance == Decimal("0.00")
    assert ledger.reconcile(account.id).is_consistent


def test_committed_balances_match_latest_entry(ledger, account_service, open_account):
    a = open_account("300.00")
    b = open_account("300.00")

    def shuffle(i):
        if i % 2:
            return ledger.transfer(a.id, b.id, Decimal("3.00"))
        return ledger.transfer(b.id, a.id, Decimal("2.00"))

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(shuffle, range(30)))

    assert all(r.ok for r in results)
    for account_id in (a.id, b.id):
        balance = account_service.get_account(account_id).balance
        latest = ledger.get_transaction_history(account_id, limit=1)[0]
        assert latest.balance_after == balance
    total = (
        account_service.get_account(a.id).balance
        + account_service.get_account(b.id).balance
    )
    assert total == Decimal("600.00")


# --- Lock Ordering ---

def compile_pg(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class LockRecordingStore(LedgerStore):
    """Keeps every lock statement a unit of work issues."""

    issued = []

    def lock_statement(self, account_ids, shared=False):
        stmt = super().lock_statement(account_ids, shared=shared)
        LockRecordingStore.issued.append(stmt)
        return stmt


def test_lock_statement_orders_rows_by_id(db_session):
    compiled = compile_pg(LedgerStore(db_session).lock_statement([9, 2, 5]))
    sql = " ".join(str(compiled).split())

    assert "ORDER BY accounts.id FOR UPDATE" in sql
    assert list(compiled.params.values()) == [[2, 5, 9]]


def test_shared_lock_statement(db_session):
    compiled = compile_pg(LedgerStore(db_session).lock_statement([3], shared=True))

    assert str(compiled).rstrip().endswith("FOR SHARE")


def test_transfer_locks_lower_id_first(session_factory, open_account):
    low = open_account("50.00")
    high = open_account("50.00")
    ledger = LedgerEngine(session_factory, store_class=LockRecordingStore)
    LockRecordingStore.issued.clear()

    assert ledger.transfer(high.id, low.id, Decimal("10.00")).ok
    assert ledger.transfer(low.id, high.id, Decimal("5.00")).ok

    assert len(LockRecordingStore.issued) == 2
    for stmt in LockRecordingStore.issued:
        compiled = compile_pg(stmt)
        assert list(compiled.params.values()) == [[low.id, high.id]]
        assert "ORDER BY accounts.id FOR UPDATE" in " ".join(str(compiled).split())
