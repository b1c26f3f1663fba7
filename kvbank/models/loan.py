"""
Loan model — a fixed-term amortizing loan owned by one account.

Lifecycle:
    pending ──approve──▶ active ──close / last payment──▶ paid

  - No transition skips `active`: a pending loan cannot be marked paid.
  - `paid` is terminal. A paid loan is never reopened; a new loan is created.

Monthly payment:
  Uses the standard amortization formula

      payment = P × r / (1 − (1 + r)^−n)

  where P is the principal, r the monthly rate (annual percentage / 100 / 12)
  and n the term in months. With a zero rate the principal is simply split
  into n equal payments. The computation runs in Decimal and is rounded
  half-up to whole cents, so no float rounding error reaches the ledger.
"""

import enum
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from kvbank.exceptions import InvalidStateTransitionError, ValidationError


class LoanStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAID = "paid"


# Allowed next states for each status
LOAN_TRANSITIONS: dict[LoanStatus, frozenset[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.ACTIVE}),
    LoanStatus.ACTIVE: frozenset({LoanStatus.PAID}),
    LoanStatus.PAID: frozenset(),
}


def monthly_payment_cents(principal_cents: int, annual_rate: float, term_months: int) -> int:
    """
    Compute the fixed monthly payment for an amortizing loan.

    Args:
        principal_cents: Loan principal in cents (must be positive).
        annual_rate: Annual interest rate as a percentage (e.g. 12.0 for 12%).
        term_months: Number of monthly payments (must be at least 1).

    Returns:
        The monthly payment in cents, rounded half-up.

    Raises:
        ValidationError: If the principal, rate or term is out of range.
    """
    if principal_cents <= 0:
        raise ValidationError("Loan principal must be positive", fields=["amount_cents"])
    if term_months < 1:
        raise ValidationError("Loan term must be at least one month", fields=["term_months"])
    if annual_rate < 0:
        raise ValidationError("Interest rate cannot be negative", fields=["interest_rate"])

    principal = Decimal(principal_cents)
    monthly_rate = Decimal(str(annual_rate)) / Decimal(100) / Decimal(12)

    if monthly_rate == 0:
        payment = principal / Decimal(term_months)
    else:
        payment = principal * monthly_rate / (1 - (1 + monthly_rate) ** -term_months)

    return int(payment.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class Loan(BaseModel):
    id: str
    # Principal in cents
    amount_cents: int = Field(gt=0)
    monthly_payment_cents: int = Field(ge=0)
    remaining_payments: int = Field(ge=0)
    # Annual percentage rate
    interest_rate: float = Field(ge=0)
    status: LoanStatus = LoanStatus.PENDING
    purpose: str | None = None
    approval_date: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE

    def transition(self, target: LoanStatus) -> None:
        """Move to `target`, or raise InvalidStateTransitionError."""
        if target not in LOAN_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError("Loan", self.id, self.status.value, target.value)
        self.status = target
