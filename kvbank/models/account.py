"""
Account model — a bank account stored as one JSON document.

Each account document holds:
  - Identity: opaque id, unique account number (4001-XXXX-XXXX), owner
    name, email, phone and address
  - An Argon2 password hash (absent for accounts the admin created without
    a login)
  - The balance in integer cents
  - The ordered movement history, plus the account's loans and credit lines

Balance invariant:
  `balance_cents` always equals the signed sum of `movements` (deposits
  positive, withdrawals and outgoing transfers negative). An initial balance
  is recorded as an "Initial deposit" movement, so the sum starts at zero.

  `post_movement()` is the only code path that changes `balance_cents`, and
  it appends the movement in the same step. Because the whole account is
  persisted as a single document, the balance and its history are always
  written together.

Why integer cents?
  Floating-point numbers accumulate representation error (0.1 + 0.2 !=
  0.3). Storing amounts as integer cents keeps all ledger arithmetic exact;
  clients divide by 100 for display.

Soft delete:
  Accounts are never physically removed. Deactivation flips `is_active` so
  the movement history stays available for auditing.
"""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from kvbank.exceptions import (
    CreditNotFoundError,
    InsufficientFundsError,
    LoanNotFoundError,
    ValidationError,
)
from kvbank.models.credit import Credit
from kvbank.models.loan import Loan
from kvbank.models.movement import Movement, MovementKind


class AccountType(str, enum.Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    BUSINESS = "business"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountDraft(BaseModel):
    """
    Caller-supplied fields for a new account.

    Required fields are optional here on purpose: the repository reports
    every missing one in a single ValidationError instead of failing on the
    first.
    """
    full_name: str | None = None
    email: str | None = None
    account_type: AccountType | None = None
    phone: str = ""
    address: str = ""
    # Plaintext; hashed by the repository before anything is stored
    password: str | None = None
    initial_balance_cents: int = 0


class Account(BaseModel):
    id: str
    account_number: str
    full_name: str
    email: str
    phone: str = ""
    address: str = ""
    password_hash: str | None = None
    balance_cents: int = Field(default=0, ge=0)
    account_type: AccountType
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True
    movements: list[Movement] = Field(default_factory=list)
    loans: list[Loan] = Field(default_factory=list)
    credits: list[Credit] = Field(default_factory=list)

    # --- Ledger --------------------------------------------------------------

    def computed_balance_cents(self) -> int:
        """Recompute the balance from the movement history."""
        return sum(movement.signed_amount_cents for movement in self.movements)

    def post_movement(
        self,
        movement_id: str,
        kind: MovementKind,
        amount_cents: int,
        description: str,
        when: datetime | None = None,
    ) -> Movement:
        """
        Apply a movement: append it and update the balance in one step.

        Raises:
            ValidationError: If the amount is not positive.
            InsufficientFundsError: If a withdrawal or transfer would drive
                the balance negative. Nothing is changed in that case.
        """
        if amount_cents <= 0:
            raise ValidationError("Amount must be positive", fields=["amount_cents"])

        if kind.is_credit:
            new_balance = self.balance_cents + amount_cents
        else:
            new_balance = self.balance_cents - amount_cents
            if new_balance < 0:
                raise InsufficientFundsError(
                    account_id=self.id,
                    requested_cents=amount_cents,
                    available_cents=self.balance_cents,
                )

        when = when or utcnow()
        movement = Movement(
            id=movement_id,
            kind=kind,
            amount_cents=amount_cents,
            description=description,
            date=when,
            balance_after_cents=new_balance,
        )
        self.movements.append(movement)
        self.balance_cents = new_balance
        self.updated_at = when
        return movement

    # --- Loans and credits ---------------------------------------------------

    def find_loan(self, loan_id: str) -> Loan:
        for loan in self.loans:
            if loan.id == loan_id:
                return loan
        raise LoanNotFoundError(self.id, loan_id)

    def find_credit(self, credit_id: str) -> Credit:
        for credit in self.credits:
            if credit.id == credit_id:
                return credit
        raise CreditNotFoundError(self.id, credit_id)

    def has_active_loans(self) -> bool:
        return any(loan.is_active for loan in self.loans)
