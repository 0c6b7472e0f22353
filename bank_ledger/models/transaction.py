"""
Transaction log model.

Each row is one immutable ledger entry: a single
balance-affecting event on a single account. Entries are
appended and never modified or deleted. A transfer produces
two entries, one per leg, that name each other's account
as counterpart.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column, validates

from bank_ledger.errors import ImmutableEntryError
from bank_ledger.models.base import Base, Money, TokenEnum, token_check, utcnow
from bank_ledger.models.enums import TransactionType
from bank_ledger.money import positive_amount


class Transaction(Base):
    """
    An immutable ledger entry.

    balance_after is the owning account's balance immediately
    after this entry was applied. Replaying an account's entries
    in creation order and summing signed_amount reproduces its
    current balance.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        token_check("transaction_type", TransactionType, "ck_transactions_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        TokenEnum(TransactionType), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    related_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )

    @validates("amount")
    def _validate_amount(self, key, value):
        return positive_amount(value)

    @validates("transaction_type")
    def _validate_type(self, key, value):
        if isinstance(value, TransactionType):
            return value
        return TransactionType.from_token(value)

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this entry on the owning account's balance."""
        if self.transaction_type.is_credit:
            return self.amount
        return -self.amount

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} {self.transaction_type.value} "
            f"{self.amount} on account {self.account_id}>"
        )


@event.listens_for(Transaction, "before_update")
def _reject_update(mapper, connection, target):
    raise ImmutableEntryError(f"Ledger entry {target.id} cannot be modified")


@event.listens_for(Transaction, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ImmutableEntryError(f"Ledger entry {target.id} cannot be deleted")
