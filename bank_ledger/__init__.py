"""
Bank Ledger: transactional ledger engine for a banking client.

The UI layer builds a session factory once and hands it to the
services:

    from bank_ledger.models.base import get_session_factory
    from bank_ledger.services import LedgerEngine

    engine = LedgerEngine(get_session_factory())
    result = engine.deposit(account_id, "50.00", "Cash")
    if not result.ok:
        ...
"""

__version__ = "0.1.0"
