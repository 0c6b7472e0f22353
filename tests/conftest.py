"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the
real database. Tables are created before each test and dropped
after it, so every test starts from an empty ledger.
"""

from decimal import Decimal

import pytest

from bank_ledger.models.base import Base, create_session_factory, create_store_engine
from bank_ledger.models.enums import AccountType
from bank_ledger.schemas.account import AccountOpen
from bank_ledger.services.account_service import AccountService
from bank_ledger.services.ledger_engine import LedgerEngine


# A file-backed database rather than :memory: so that worker
# threads in the concurrency tests each get their own connection
# to the same data.
TEST_DATABASE_URL = "sqlite:///./test_ledger.db"

engine = create_store_engine(url=TEST_DATABASE_URL)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    """Provide a raw session for direct model testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def ledger(session_factory):
    return LedgerEngine(session_factory)


@pytest.fixture
def account_service(session_factory):
    return AccountService(session_factory)


@pytest.fixture
def open_account(account_service):
    """Factory: open an active account with the given starting balance."""

    def _open(
        initial_deposit="0.00",
        user_id=1,
        account_type=AccountType.CHECKING,
    ):
        return account_service.open_account(AccountOpen(
            user_id=user_id,
            account_type=account_type,
            initial_deposit=Decimal(initial_deposit),
        ))

    return _open
