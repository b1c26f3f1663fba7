"""
Pydantic schemas for credit line endpoints.

Drawn amounts and limits are integer cents. `available_cents` is derived
(limit minus drawn) and only appears in responses.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from kvbank.models.credit import CreditStatus
from kvbank.schemas.movement import MovementResponse


class CreditCreateRequest(BaseModel):
    """Request body for POST /credits."""
    account_id: str
    limit_cents: int = Field(gt=0)
    interest_rate: float = Field(ge=0, description="Annual interest rate, in percent")
    credit_score: int | None = Field(default=None, ge=300, le=850)
    monthly_payment_cents: int | None = Field(default=None, ge=0)
    next_payment_date: datetime | None = None
    pending: bool = Field(default=False, description="Open as pending, awaiting approval")


class CreditAmountRequest(BaseModel):
    """Request body for draws and repayments."""
    amount_cents: int = Field(gt=0)


class CreditLimitRequest(BaseModel):
    limit_cents: int = Field(gt=0)


class CreditResponse(BaseModel):
    id: str
    amount_cents: int
    limit_cents: int
    available_cents: int
    interest_rate: float
    status: CreditStatus
    monthly_payment_cents: int | None
    next_payment_date: datetime | None
    credit_score: int | None
    approval_date: datetime | None

    model_config = {"from_attributes": True}


class CreditMovementResponse(BaseModel):
    """Response for a draw or repayment: the updated line and the movement posted."""
    credit: CreditResponse
    movement: MovementResponse
