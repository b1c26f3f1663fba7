"""
Credit model — a revolving credit line owned by one account.

Unlike a Loan, a credit line has no fixed schedule: the drawn amount moves up
(draws) and down (repayments) at any time, but never above the limit.

Lifecycle:
    pending ──approve──▶ active ──close──▶ closed

`closed` is terminal: no further draws, repayments or limit changes.
"""

import enum
from datetime import datetime

from pydantic import BaseModel, Field, computed_field, model_validator

from kvbank.exceptions import InvalidStateTransitionError


class CreditStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


CREDIT_TRANSITIONS: dict[CreditStatus, frozenset[CreditStatus]] = {
    CreditStatus.PENDING: frozenset({CreditStatus.ACTIVE}),
    CreditStatus.ACTIVE: frozenset({CreditStatus.CLOSED}),
    CreditStatus.CLOSED: frozenset(),
}


class Credit(BaseModel):
    id: str
    # Amount currently drawn, in cents
    amount_cents: int = Field(default=0, ge=0)
    limit_cents: int = Field(gt=0)
    interest_rate: float = Field(ge=0)
    status: CreditStatus = CreditStatus.PENDING
    monthly_payment_cents: int | None = None
    next_payment_date: datetime | None = None
    credit_score: int | None = None
    approval_date: datetime | None = None

    @model_validator(mode="after")
    def drawn_within_limit(self):
        if self.amount_cents > self.limit_cents:
            raise ValueError("Drawn amount cannot exceed the credit limit")
        return self

    @computed_field
    @property
    def available_cents(self) -> int:
        """Remaining room on the line: limit minus amount drawn."""
        return self.limit_cents - self.amount_cents

    @property
    def is_active(self) -> bool:
        return self.status is CreditStatus.ACTIVE

    def transition(self, target: CreditStatus) -> None:
        if target not in CREDIT_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError("Credit", self.id, self.status.value, target.value)
        self.status = target
