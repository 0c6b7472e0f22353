"""
Tests for enum token serialization.

Every variant must serialize to a unique token and parse back
to itself. Unknown tokens are hard errors, never a default.
"""

import pytest

from bank_ledger.errors import UnknownTokenError
from bank_ledger.models.enums import AccountStatus, AccountType, TransactionType


@pytest.mark.parametrize("enum_class", [TransactionType, AccountType, AccountStatus])
def test_tokens_round_trip(enum_class):
    tokens = [member.to_token() for member in enum_class]

    assert len(set(tokens)) == len(tokens)
    for member in enum_class:
        assert enum_class.from_token(member.to_token()) is member


def test_transaction_type_tokens():
    assert TransactionType.DEPOSIT.to_token() == "deposit"
    assert TransactionType.WITHDRAWAL.to_token() == "withdrawal"
    assert TransactionType.TRANSFER_IN.to_token() == "transfer_in"
    assert TransactionType.TRANSFER_OUT.to_token() == "transfer_out"


@pytest.mark.parametrize("token", ["bonus", "", "Deposit", "DEPOSIT", None, 3])
def test_unknown_transaction_token_rejected(token):
    with pytest.raises(UnknownTokenError):
        TransactionType.from_token(token)


def test_unknown_account_tokens_rejected():
    with pytest.raises(UnknownTokenError, match="AccountType"):
        AccountType.from_token("brokerage")
    with pytest.raises(UnknownTokenError, match="AccountStatus"):
        AccountStatus.from_token("closed")


def test_credit_kinds():
    assert TransactionType.DEPOSIT.is_credit
    assert TransactionType.TRANSFER_IN.is_credit
    assert not TransactionType.WITHDRAWAL.is_credit
    assert not TransactionType.TRANSFER_OUT.is_credit
