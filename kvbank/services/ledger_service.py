"""
Ledger service — the core financial business logic.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Recording deposits, withdrawals and outgoing transfers
  - Transfers between two accounts
  - Loan disbursement, approval, payments and closing
  - Credit lines: opening, approval, draws, repayments, limit changes

Every function loads the account document, mutates it in memory through
the model methods, and persists it with ONE repository write. The balance,
the new movement and any loan/credit change land in the same document, so
the cached balance always equals the sum of the movement history.

Validation happens before anything is written: a declined withdrawal or an
over-limit draw leaves the stored account untouched.

Concurrency:
  Each operation is a read-modify-write of a single account document; two
  concurrent writes to the same account resolve as last-write-wins. A
  transfer touches two documents with two writes and is NOT atomic across
  them. If the second write fails, the debit stays on the source account
  and the failure is logged with both account ids.

Loan disbursement:
  disburse_loan() records an active loan but does not credit the principal
  to the balance; no movement is created.
"""

import logging
from datetime import datetime

from kvbank.exceptions import (
    AccountNotFoundError,
    ConflictError,
    CreditLimitExceededError,
    InsufficientFundsError,
    StorageError,
    ValidationError,
)
from kvbank.models.account import Account, utcnow
from kvbank.models.credit import Credit, CreditStatus
from kvbank.models.loan import Loan, LoanStatus, monthly_payment_cents
from kvbank.models.movement import Movement, MovementKind
from kvbank.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)

LOAN_PAYMENT_DESCRIPTION = "Loan payment"
CREDIT_DRAW_DESCRIPTION = "Credit line draw"
CREDIT_REPAYMENT_DESCRIPTION = "Credit line repayment"


async def _load_active(repository: AccountRepository, account_id: str) -> Account:
    account = await repository.require(account_id)
    if not account.is_active:
        raise ConflictError(f"Account {account_id} is inactive")
    return account


def _require_positive(amount_cents: int, field: str = "amount_cents") -> None:
    if amount_cents <= 0:
        raise ValidationError("Amount must be positive", fields=[field])


# ---------------------------------------------------------------------------
# Movements and transfers
# ---------------------------------------------------------------------------

async def record_movement(
    repository: AccountRepository,
    account_id: str,
    kind: MovementKind,
    amount_cents: int,
    description: str,
) -> Movement:
    """
    Record a single deposit, withdrawal or outgoing transfer.

    Args:
        repository: The account repository.
        account_id: The account to credit/debit.
        kind: deposit adds to the balance; withdrawal and transfer subtract.
        amount_cents: Positive integer amount in cents.
        description: Free-text memo stored on the movement.

    Returns:
        The recorded Movement.

    Raises:
        ValidationError: If the amount is not positive.
        AccountNotFoundError: If the account doesn't exist.
        ConflictError: If the account is inactive.
        InsufficientFundsError: If a debit would cause a negative balance.
    """
    _require_positive(amount_cents)
    account = await _load_active(repository, account_id)

    try:
        movement = account.post_movement(
            await repository.generate_id("movement"), kind, amount_cents, description
        )
    except InsufficientFundsError:
        logger.info(
            "Declined %s on %s",
            kind.value,
            account_id,
            extra={"operation": "record_movement", "account_id": account_id,
                   "amount_cents": amount_cents},
        )
        raise

    await repository.save(
        account,
        kind.value.upper(),
        {"movement_id": movement.id, "amount_cents": amount_cents, "description": description},
    )
    return movement


async def transfer(
    repository: AccountRepository,
    from_account_id: str,
    to_account_number: str,
    amount_cents: int,
    description: str | None = None,
) -> tuple[Movement, Movement]:
    """
    Move money from one account to another, identified by account number.

    The source gets a `transfer` movement (debit), the destination a
    `deposit`. Both accounts are validated before either is written.

    Returns:
        (debit movement, credit movement)

    Raises:
        ValidationError: Non-positive amount, or source and destination are
            the same account.
        AccountNotFoundError: Unknown source id or destination number.
        ConflictError: Either account is inactive.
        InsufficientFundsError: The source cannot cover the amount.
    """
    _require_positive(amount_cents)
    source = await _load_active(repository, from_account_id)

    destination = await repository.get_by_account_number(to_account_number)
    if destination is None:
        raise AccountNotFoundError(to_account_number)
    if not destination.is_active:
        raise ConflictError(f"Account {to_account_number} is inactive")
    if destination.id == source.id:
        raise ValidationError(
            "Cannot transfer to the same account", fields=["to_account_number"]
        )

    memo = description or f"Transfer to {destination.account_number}"
    debit = source.post_movement(
        await repository.generate_id("movement"), MovementKind.TRANSFER, amount_cents, memo
    )
    credit = destination.post_movement(
        await repository.generate_id("movement"),
        MovementKind.DEPOSIT,
        amount_cents,
        description or f"Transfer from {source.account_number}",
    )

    details = {
        "from_account_id": source.id,
        "to_account_id": destination.id,
        "amount_cents": amount_cents,
    }
    await repository.save(source, "TRANSFER_OUT", details)
    try:
        await repository.save(destination, "TRANSFER_IN", details)
    except StorageError:
        logger.error(
            "Transfer credit failed after debit was persisted",
            extra={"operation": "transfer", **details},
        )
        raise

    logger.info("Transfer %s -> %s of %d cents", source.id, destination.id, amount_cents)
    return debit, credit


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------

async def _add_loan(
    repository: AccountRepository,
    account_id: str,
    principal_cents: int,
    interest_rate: float,
    term_months: int,
    purpose: str | None,
    status: LoanStatus,
) -> Loan:
    account = await _load_active(repository, account_id)
    payment = monthly_payment_cents(principal_cents, interest_rate, term_months)

    loan = Loan(
        id=await repository.generate_id("loan"),
        amount_cents=principal_cents,
        monthly_payment_cents=payment,
        remaining_payments=term_months,
        interest_rate=interest_rate,
        status=status,
        purpose=purpose,
        approval_date=utcnow() if status is LoanStatus.ACTIVE else None,
    )
    account.loans.append(loan)
    account.updated_at = utcnow()

    action = "DISBURSE_LOAN" if status is LoanStatus.ACTIVE else "REQUEST_LOAN"
    await repository.save(
        account,
        action,
        {"loan_id": loan.id, "amount_cents": principal_cents, "term_months": term_months},
    )
    return loan


async def disburse_loan(
    repository: AccountRepository,
    account_id: str,
    principal_cents: int,
    interest_rate: float,
    term_months: int,
    purpose: str | None = None,
) -> Loan:
    """
    Grant an active loan immediately.

    The monthly payment is fixed at creation from the amortization formula.
    The principal is NOT credited to the balance.

    Raises:
        ValidationError: Principal <= 0, term < 1 or negative rate.
        AccountNotFoundError / ConflictError: Unknown or inactive account.
    """
    return await _add_loan(
        repository, account_id, principal_cents, interest_rate, term_months,
        purpose, LoanStatus.ACTIVE,
    )


async def request_loan(
    repository: AccountRepository,
    account_id: str,
    principal_cents: int,
    interest_rate: float,
    term_months: int,
    purpose: str | None = None,
) -> Loan:
    """Add a pending loan that an administrator approves later."""
    return await _add_loan(
        repository, account_id, principal_cents, interest_rate, term_months,
        purpose, LoanStatus.PENDING,
    )


async def approve_loan(repository: AccountRepository, account_id: str, loan_id: str) -> Loan:
    account = await _load_active(repository, account_id)
    loan = account.find_loan(loan_id)
    loan.transition(LoanStatus.ACTIVE)
    loan.approval_date = utcnow()
    account.updated_at = loan.approval_date
    await repository.save(account, "APPROVE_LOAN", {"loan_id": loan_id})
    return loan


async def record_loan_payment(
    repository: AccountRepository, account_id: str, loan_id: str
) -> tuple[Loan, Movement]:
    """
    Pay one monthly installment of an active loan from the account balance.

    The installment is posted as a "Loan payment" withdrawal. The loan moves
    to `paid` once no payments remain.

    Raises:
        ConflictError: The loan is not active.
        InsufficientFundsError: The balance cannot cover the installment.
    """
    account = await _load_active(repository, account_id)
    loan = account.find_loan(loan_id)
    if not loan.is_active:
        raise ConflictError(f"Loan {loan_id} is {loan.status.value}, not active")

    movement = account.post_movement(
        await repository.generate_id("movement"),
        MovementKind.WITHDRAWAL,
        loan.monthly_payment_cents,
        LOAN_PAYMENT_DESCRIPTION,
    )
    loan.remaining_payments = max(loan.remaining_payments - 1, 0)
    if loan.remaining_payments == 0:
        loan.transition(LoanStatus.PAID)

    await repository.save(
        account,
        "LOAN_PAYMENT",
        {
            "loan_id": loan_id,
            "amount_cents": movement.amount_cents,
            "remaining_payments": loan.remaining_payments,
        },
    )
    return loan, movement


async def close_loan(repository: AccountRepository, account_id: str, loan_id: str) -> Loan:
    """Mark an active loan as paid. Works on inactive accounts too."""
    account = await repository.require(account_id)
    loan = account.find_loan(loan_id)
    loan.transition(LoanStatus.PAID)
    loan.remaining_payments = 0
    account.updated_at = utcnow()
    await repository.save(account, "CLOSE_LOAN", {"loan_id": loan_id})
    return loan


async def delete_loan(repository: AccountRepository, account_id: str, loan_id: str) -> None:
    """
    Remove a pending or paid loan from the account.

    Raises:
        ConflictError: The loan is active; close it first.
    """
    account = await repository.require(account_id)
    loan = account.find_loan(loan_id)
    if loan.is_active:
        raise ConflictError(f"Loan {loan_id} is active and cannot be deleted")
    account.loans = [item for item in account.loans if item.id != loan_id]
    account.updated_at = utcnow()
    await repository.save(account, "DELETE_LOAN", {"loan_id": loan_id})


# ---------------------------------------------------------------------------
# Credit lines
# ---------------------------------------------------------------------------

async def open_credit(
    repository: AccountRepository,
    account_id: str,
    limit_cents: int,
    interest_rate: float,
    credit_score: int | None = None,
    monthly_payment_cents: int | None = None,
    next_payment_date: datetime | None = None,
    pending: bool = False,
) -> Credit:
    """
    Open a credit line with nothing drawn.

    With pending=True the line waits for approve_credit(); otherwise it is
    active immediately.
    """
    _require_positive(limit_cents, "limit_cents")
    if interest_rate < 0:
        raise ValidationError("Interest rate cannot be negative", fields=["interest_rate"])
    account = await _load_active(repository, account_id)

    status = CreditStatus.PENDING if pending else CreditStatus.ACTIVE
    credit = Credit(
        id=await repository.generate_id("credit"),
        limit_cents=limit_cents,
        interest_rate=interest_rate,
        status=status,
        monthly_payment_cents=monthly_payment_cents,
        next_payment_date=next_payment_date,
        credit_score=credit_score,
        approval_date=None if pending else utcnow(),
    )
    account.credits.append(credit)
    account.updated_at = utcnow()
    await repository.save(
        account, "OPEN_CREDIT", {"credit_id": credit.id, "limit_cents": limit_cents}
    )
    return credit


async def approve_credit(
    repository: AccountRepository, account_id: str, credit_id: str
) -> Credit:
    account = await _load_active(repository, account_id)
    credit = account.find_credit(credit_id)
    credit.transition(CreditStatus.ACTIVE)
    credit.approval_date = utcnow()
    account.updated_at = credit.approval_date
    await repository.save(account, "APPROVE_CREDIT", {"credit_id": credit_id})
    return credit


async def draw_credit(
    repository: AccountRepository, account_id: str, credit_id: str, amount_cents: int
) -> tuple[Credit, Movement]:
    """
    Draw from an active credit line into the account balance.

    The draw is posted as a "Credit line draw" deposit and the drawn amount
    rises by the same figure, in one write.

    Raises:
        ValidationError: Non-positive amount.
        ConflictError: The credit line is not active.
        CreditLimitExceededError: The draw would pass the limit.
    """
    _require_positive(amount_cents)
    account = await _load_active(repository, account_id)
    credit = account.find_credit(credit_id)
    if not credit.is_active:
        raise ConflictError(f"Credit {credit_id} is {credit.status.value}, not active")

    if amount_cents > credit.available_cents:
        logger.info(
            "Declined draw on credit %s",
            credit_id,
            extra={"operation": "draw_credit", "account_id": account_id,
                   "amount_cents": amount_cents},
        )
        raise CreditLimitExceededError(credit_id, amount_cents, credit.available_cents)

    movement = account.post_movement(
        await repository.generate_id("movement"),
        MovementKind.DEPOSIT,
        amount_cents,
        CREDIT_DRAW_DESCRIPTION,
    )
    credit.amount_cents += amount_cents

    await repository.save(
        account,
        "DRAW_CREDIT",
        {"credit_id": credit_id, "amount_cents": amount_cents, "drawn_cents": credit.amount_cents},
    )
    return credit, movement


async def repay_credit(
    repository: AccountRepository, account_id: str, credit_id: str, amount_cents: int
) -> tuple[Credit, Movement]:
    """
    Pay down an active credit line from the account balance.

    Raises:
        ValidationError: Non-positive amount, or more than is drawn.
        ConflictError: The credit line is not active.
        InsufficientFundsError: The balance cannot cover the repayment.
    """
    _require_positive(amount_cents)
    account = await _load_active(repository, account_id)
    credit = account.find_credit(credit_id)
    if not credit.is_active:
        raise ConflictError(f"Credit {credit_id} is {credit.status.value}, not active")
    if amount_cents > credit.amount_cents:
        raise ValidationError(
            f"Repayment exceeds the drawn amount of {credit.amount_cents} cents",
            fields=["amount_cents"],
        )

    movement = account.post_movement(
        await repository.generate_id("movement"),
        MovementKind.WITHDRAWAL,
        amount_cents,
        CREDIT_REPAYMENT_DESCRIPTION,
    )
    credit.amount_cents -= amount_cents

    await repository.save(
        account,
        "REPAY_CREDIT",
        {"credit_id": credit_id, "amount_cents": amount_cents, "drawn_cents": credit.amount_cents},
    )
    return credit, movement


async def adjust_credit_limit(
    repository: AccountRepository, account_id: str, credit_id: str, new_limit_cents: int
) -> Credit:
    """
    Raise or lower a credit limit.

    Raises:
        ValidationError: Non-positive limit.
        ConflictError: The credit line is closed.
        CreditLimitExceededError: The new limit is below the drawn amount.
    """
    _require_positive(new_limit_cents, "limit_cents")
    account = await repository.require(account_id)
    credit = account.find_credit(credit_id)
    if credit.status is CreditStatus.CLOSED:
        raise ConflictError(f"Credit {credit_id} is closed")
    if new_limit_cents < credit.amount_cents:
        raise CreditLimitExceededError(credit_id, credit.amount_cents, new_limit_cents)

    previous = credit.limit_cents
    credit.limit_cents = new_limit_cents
    account.updated_at = utcnow()
    await repository.save(
        account,
        "ADJUST_CREDIT_LIMIT",
        {"credit_id": credit_id, "previous_limit_cents": previous, "limit_cents": new_limit_cents},
    )
    return credit


async def close_credit(repository: AccountRepository, account_id: str, credit_id: str) -> Credit:
    account = await repository.require(account_id)
    credit = account.find_credit(credit_id)
    credit.transition(CreditStatus.CLOSED)
    account.updated_at = utcnow()
    await repository.save(account, "CLOSE_CREDIT", {"credit_id": credit_id})
    return credit


async def delete_credit(repository: AccountRepository, account_id: str, credit_id: str) -> None:
    """Remove a pending or closed credit line. Active lines must be closed first."""
    account = await repository.require(account_id)
    credit = account.find_credit(credit_id)
    if credit.is_active:
        raise ConflictError(f"Credit {credit_id} is active and cannot be deleted")
    account.credits = [item for item in account.credits if item.id != credit_id]
    account.updated_at = utcnow()
    await repository.save(account, "DELETE_CREDIT", {"credit_id": credit_id})
