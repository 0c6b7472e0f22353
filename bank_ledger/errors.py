"""
Ledger error taxonomy.

Every failure the ledger can report has a kind. Callers branch
on the kind, never on the message text. Store-detected failures
are always raised after the unit of work has been rolled back.
"""

import enum


class ErrorKind(str, enum.Enum):
    INVALID_AMOUNT = "INVALID_AMOUNT"
    ACCOUNT_NOT_ELIGIBLE = "ACCOUNT_NOT_ELIGIBLE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    SELF_TRANSFER = "SELF_TRANSFER"
    DESTINATION_NOT_ELIGIBLE = "DESTINATION_NOT_ELIGIBLE"
    BALANCE_LIMIT_EXCEEDED = "BALANCE_LIMIT_EXCEEDED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"


class LedgerError(Exception):
    """Base ledger error."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retryable: bool = False,
    ) -> None:
        self.kind = kind
        self.message = message
        self.retryable = retryable
        super().__init__(message)


# --- Validation (rejected before the store is touched) ---

class InvalidAmountError(LedgerError):
    def __init__(self, amount) -> None:
        super().__init__(
            ErrorKind.INVALID_AMOUNT,
            f"Amount must be a positive value with at most 2 decimal places, got {amount!r}",
        )


class SelfTransferError(LedgerError):
    def __init__(self, account_id: int) -> None:
        super().__init__(
            ErrorKind.SELF_TRANSFER,
            f"Cannot transfer from account {account_id} to itself",
        )


# --- Store-detected ---

class AccountNotEligibleError(LedgerError):
    def __init__(self, account_id: int, reason: str) -> None:
        self.account_id = account_id
        super().__init__(
            ErrorKind.ACCOUNT_NOT_ELIGIBLE,
            f"Account {account_id} is not eligible: {reason}",
        )


class InsufficientFundsError(LedgerError):
    def __init__(self, account_id: int, required, available) -> None:
        self.account_id = account_id
        super().__init__(
            ErrorKind.INSUFFICIENT_FUNDS,
            f"Insufficient funds in account {account_id}: "
            f"required {required}, available {available}",
        )


class DestinationNotEligibleError(LedgerError):
    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(
            ErrorKind.DESTINATION_NOT_ELIGIBLE,
            f"Destination account {account_id} is missing or not active",
        )


class BalanceLimitExceededError(LedgerError):
    def __init__(self, account_id: int, amount, limit) -> None:
        self.account_id = account_id
        super().__init__(
            ErrorKind.BALANCE_LIMIT_EXCEEDED,
            f"Crediting {amount} to account {account_id} would exceed "
            f"the maximum balance {limit}",
        )


class StoreUnavailableError(LedgerError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            ErrorKind.STORE_UNAVAILABLE,
            f"Ledger store unavailable: {detail}",
            retryable=True,
        )


# --- Reads and administration ---

class AccountNotFoundError(LedgerError):
    def __init__(self, account_ref) -> None:
        super().__init__(
            ErrorKind.ACCOUNT_NOT_FOUND, f"Account {account_ref} not found"
        )


class TransactionNotFoundError(LedgerError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(
            ErrorKind.TRANSACTION_NOT_FOUND,
            f"Transaction {transaction_id} not found",
        )


class InvalidStatusTransitionError(LedgerError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            ErrorKind.INVALID_STATUS_TRANSITION,
            f"Cannot transition from {current} to {requested}",
        )


# --- Data integrity ---

class UnknownTokenError(ValueError):
    """A persisted or supplied enum token has no matching variant."""

    def __init__(self, enum_name: str, token) -> None:
        self.token = token
        super().__init__(f"Unknown {enum_name} token: {token!r}")


class ImmutableEntryError(RuntimeError):
    """Raised when something tries to update or delete a ledger entry."""
