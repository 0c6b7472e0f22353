"""
Shared enumerations for database models.

Each enum serializes to a unique lowercase token and parses
back to exactly the same variant. Parsing is strict: an
unrecognized token raises UnknownTokenError rather than
falling back to a default, because a silently re-labelled
ledger entry would break the balance invariant.
"""

import enum

from bank_ledger.errors import UnknownTokenError


class _TokenEnum(str, enum.Enum):

    def to_token(self) -> str:
        return self.value

    @classmethod
    def from_token(cls, token):
        try:
            return cls(token)
        except ValueError:
            raise UnknownTokenError(cls.__name__, token) from None


class AccountType(_TokenEnum):
    """Product category of a customer account."""
    SAVINGS = "savings"
    CHECKING = "checking"
    FIXED_DEPOSIT = "fixed_deposit"


class AccountStatus(_TokenEnum):
    """Only ACTIVE accounts accept ledger-mutating operations."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    FROZEN = "frozen"


class TransactionType(_TokenEnum):
    """Kind of a ledger entry."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"

    @property
    def is_credit(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.TRANSFER_IN)


class OperationState(str, enum.Enum):
    """Lifecycle of one ledger unit of work."""
    STARTED = "STARTED"
    STORE_TX_OPEN = "STORE_TX_OPEN"
    APPLIED = "APPLIED"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"
    ROLLED_BACK = "ROLLED_BACK"
