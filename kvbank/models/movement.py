"""
Movement model — one immutable ledger entry on an account.

Every change to an account balance is recorded as a Movement:

  - deposit:     money into the account (signed +amount)
  - withdrawal:  money out of the account (signed -amount)
  - transfer:    money sent from this account to another one (signed -amount);
                 the receiving account records a matching deposit

Key fields:
  - amount_cents: Always positive (the direction is implied by the kind)
  - balance_after_cents: Snapshot of the account balance right after this
    movement was applied

Movements are frozen once created. A mistake is corrected by posting a new
offsetting movement, never by editing an existing one.
"""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MovementKind(str, enum.Enum):
    """Direction of a movement. Inherits from str so it serializes as plain text."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"

    @property
    def is_credit(self) -> bool:
        return self is MovementKind.DEPOSIT


class Movement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: MovementKind
    # Amount in cents, always positive
    amount_cents: int = Field(gt=0)
    description: str = ""
    date: datetime
    balance_after_cents: int

    @property
    def signed_amount_cents(self) -> int:
        """Deposits count positive; withdrawals and outgoing transfers negative."""
        return self.amount_cents if self.kind.is_credit else -self.amount_cents
