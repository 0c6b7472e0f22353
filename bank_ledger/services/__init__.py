"""Business logic services."""

from bank_ledger.services.ledger_engine import LedgerEngine
from bank_ledger.services.account_service import AccountService
from bank_ledger.services.unit_of_work import UnitOfWork

__all__ = ["LedgerEngine", "AccountService", "UnitOfWork"]
