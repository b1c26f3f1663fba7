"""
Pydantic schemas for movements and transfers.

All monetary amounts are in integer cents (e.g., $10.50 = 1050).
"""

from datetime import datetime

from pydantic import BaseModel, Field

from kvbank.models.movement import MovementKind


class MovementCreateRequest(BaseModel):
    """Request body for POST /accounts/{id}/movements."""
    kind: MovementKind
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    description: str = Field(default="", max_length=500)


class MovementResponse(BaseModel):
    id: str
    kind: MovementKind
    amount_cents: int
    description: str
    date: datetime
    balance_after_cents: int

    model_config = {"from_attributes": True}


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    from_account_id: str
    to_account_number: str = Field(pattern=r"^\d{4}-\d{4}-\d{4}$")
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    description: str | None = Field(default=None, max_length=500)


class TransferResponse(BaseModel):
    """Response body for a successful transfer."""
    debit_movement: MovementResponse
    credit_movement: MovementResponse
    amount_cents: int
    from_account_id: str
    to_account_number: str
