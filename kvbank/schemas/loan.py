"""
Pydantic schemas for Loan endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from kvbank.models.loan import LoanStatus
from kvbank.schemas.movement import MovementResponse


class LoanCreateRequest(BaseModel):
    """
    Request body for POST /loans (admin disbursement).

    The monthly payment is computed by the server from the principal, rate
    and term.
    """
    account_id: str
    amount_cents: int = Field(gt=0, description="Principal in cents")
    interest_rate: float = Field(ge=0, description="Annual interest rate, in percent")
    term_months: int = Field(ge=1, le=480)
    purpose: str | None = Field(default=None, max_length=200)


class LoanRequest(BaseModel):
    """Request body for POST /loans/request (member asks for a loan)."""
    account_id: str
    amount_cents: int = Field(gt=0)
    interest_rate: float = Field(ge=0)
    term_months: int = Field(ge=1, le=480)
    purpose: str | None = Field(default=None, max_length=200)


class LoanResponse(BaseModel):
    id: str
    amount_cents: int
    monthly_payment_cents: int
    remaining_payments: int
    interest_rate: float
    status: LoanStatus
    purpose: str | None
    approval_date: datetime | None

    model_config = {"from_attributes": True}


class LoanPaymentResponse(BaseModel):
    loan: LoanResponse
    movement: MovementResponse
