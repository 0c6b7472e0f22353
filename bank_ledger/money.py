"""
Fixed-point money helpers.

Amounts and balances are Decimal values with exactly two
fractional digits. Floats never enter the ledger: a float
amount is rejected, not converted.
"""

from decimal import Decimal, InvalidOperation

from bank_ledger.errors import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest value a signed 64-bit cents column can hold.
MAX_AMOUNT = Decimal(2**63 - 1) / 100


def to_money(value) -> Decimal:
    """
    Convert an int, str or Decimal to a two-place Decimal.

    Raises InvalidAmountError for floats, booleans, non-numeric
    input, non-finite values, anything finer than one cent and
    anything beyond MAX_AMOUNT in either direction.
    """
    if isinstance(value, (bool, float)):
        raise InvalidAmountError(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise InvalidAmountError(value)
        quantized = amount.quantize(CENT)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(value) from None

    if quantized != amount or abs(quantized) > MAX_AMOUNT:
        raise InvalidAmountError(value)
    return quantized


def positive_amount(value) -> Decimal:
    """to_money(), additionally requiring amount > 0."""
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmountError(value)
    return amount


def to_cents(amount: Decimal) -> int:
    return int(amount.quantize(CENT) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
