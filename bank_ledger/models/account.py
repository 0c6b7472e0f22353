"""
Account model.

The balance column is owned by the ledger store: application
code never assigns to it after the row is created. Balance
changes go through LedgerStore.atomic_adjust_balance(), which
checks and writes in a single statement.

can_debit() and can_credit() are pure decision rules. They
are useful for previews and UI hints, but the authoritative
check is the conditional update itself.
"""

import secrets
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from bank_ledger.models.base import Base, Money, TokenEnum, token_check, utcnow
from bank_ledger.models.enums import AccountStatus, AccountType


ACCOUNT_NUMBER_PREFIX = "ACC"
ACCOUNT_NUMBER_DIGITS = 10

# Valid administrative status changes.
VALID_TRANSITIONS: dict[AccountStatus, set[AccountStatus]] = {
    AccountStatus.ACTIVE: {AccountStatus.INACTIVE, AccountStatus.FROZEN},
    AccountStatus.FROZEN: {AccountStatus.ACTIVE, AccountStatus.INACTIVE},
    AccountStatus.INACTIVE: {AccountStatus.ACTIVE},
}


def generate_account_number() -> str:
    """ACC followed by ten random digits."""
    digits = "".join(
        secrets.choice("0123456789") for _ in range(ACCOUNT_NUMBER_DIGITS)
    )
    return f"{ACCOUNT_NUMBER_PREFIX}{digits}"


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
        token_check("account_type", AccountType, "ck_accounts_account_type"),
        token_check("status", AccountStatus, "ck_accounts_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    account_type: Mapped[AccountType] = mapped_column(
        TokenEnum(AccountType), nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    interest_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    status: Mapped[AccountStatus] = mapped_column(
        TokenEnum(AccountStatus), nullable=False, default=AccountStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def can_debit(self, amount: Decimal) -> bool:
        """True iff the account is active, amount > 0 and funds cover it."""
        return self.is_active and amount > 0 and self.balance >= amount

    def can_credit(self, amount: Decimal) -> bool:
        """True iff the account is active and amount > 0."""
        return self.is_active and amount > 0

    def can_transition_to(self, new_status: AccountStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<Account {self.account_number} "
            f"{self.account_type.value} ({self.status.value})>"
        )
