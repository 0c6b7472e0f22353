"""
Pydantic schemas for account operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bank_ledger.models.enums import AccountStatus, AccountType


class AccountOpen(BaseModel):
    """Request to open a new account."""
    user_id: int
    account_type: AccountType
    initial_deposit: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)


class AccountStatusUpdate(BaseModel):
    """Request to change account status."""
    new_status: AccountStatus
    reason: str = Field(min_length=1, max_length=255)


class AccountRecord(BaseModel):
    id: int
    account_number: str
    user_id: int
    account_type: AccountType
    balance: Decimal
    interest_rate: Decimal
    status: AccountStatus
    created_at: datetime

    model_config = {"from_attributes": True}
