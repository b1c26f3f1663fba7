"""
Pydantic schemas for Account endpoints.

These schemas define the API contract for account creation, retrieval,
updates and balance checking. All monetary amounts are expressed in integer
cents. The password hash is never part of any response.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from kvbank.models.account import AccountType
from kvbank.schemas.credit import CreditResponse
from kvbank.schemas.loan import LoanResponse
from kvbank.schemas.movement import MovementResponse


class AccountCreateRequest(BaseModel):
    """Request body for POST /accounts (administrator)."""
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    account_type: AccountType = AccountType.CHECKING
    phone: str = ""
    address: str = ""
    # Optional: accounts created without a password cannot log in
    password: str | None = Field(default=None, min_length=6)
    initial_balance_cents: int = Field(default=0, ge=0, description="Opening balance in cents")


class AccountUpdateRequest(BaseModel):
    """
    Request body for PUT /accounts/{id}.

    Every field is optional; omitted fields keep their value. Changing
    `balance_cents` posts an "Administrative adjustment" movement for the
    difference instead of overwriting the balance.
    """
    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    account_type: AccountType | None = None
    phone: str | None = None
    address: str | None = None
    password: str | None = Field(default=None, min_length=6)
    balance_cents: int | None = Field(default=None, ge=0)

    model_config = {"extra": "forbid"}


class AccountSummaryResponse(BaseModel):
    """Account without its history, used in listings."""
    id: str
    account_number: str
    full_name: str
    email: str
    phone: str
    address: str
    account_type: AccountType
    balance_cents: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountResponse(AccountSummaryResponse):
    """Full account document, minus the password hash."""
    movements: list[MovementResponse]
    loans: list[LoanResponse]
    credits: list[CreditResponse]


class BalanceResponse(BaseModel):
    """
    Balance check response — includes both cached and computed values.

    The `match` field indicates whether the stored balance agrees with the
    signed sum of the movement history. A mismatch would indicate a data
    integrity issue.
    """
    account_id: str
    cached_balance_cents: int
    computed_balance_cents: int
    match: bool
