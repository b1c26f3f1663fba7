"""
Tests for the ledger service — movements, transfers, loans and credit lines.

These tests verify:
  - Deposits and withdrawals, including the exact-balance boundary
  - A declined withdrawal leaves the stored account untouched
  - Transfers debit one account and credit the other
  - The loan lifecycle (disburse, request/approve, payments, close, delete)
  - The credit lifecycle (open, draw up to the limit, repay, limit changes)
  - The balance invariant after a long mixed sequence of operations
  - Storage write failures propagate, including a transfer's second write
"""

import pytest

from kvbank.exceptions import (
    AccountNotFoundError,
    ConflictError,
    CreditLimitExceededError,
    CreditNotFoundError,
    InsufficientFundsError,
    InvalidStateTransitionError,
    LoanNotFoundError,
    StorageError,
    ValidationError,
)
from kvbank.models.credit import CreditStatus
from kvbank.models.loan import LoanStatus
from kvbank.models.movement import MovementKind
from kvbank.services import ledger_service
from kvbank.services.account_repository import AccountRepository
from kvbank.storage.memory import MemoryStorage


@pytest.fixture
async def account(repository, make_draft):
    """An active account opened with 1000.00."""
    return await repository.create(make_draft(initial_balance_cents=100000))


class TestMovements:
    async def test_deposit_then_overdraft(self, repository, account):
        """Deposit 500.00, then withdrawing 1500.01 fails and the balance stays 1500.00."""
        await ledger_service.record_movement(
            repository, account.id, MovementKind.DEPOSIT, 50000, "Deposit"
        )
        with pytest.raises(InsufficientFundsError):
            await ledger_service.record_movement(
                repository, account.id, MovementKind.WITHDRAWAL, 150001, "Too much"
            )

        stored = await repository.require(account.id)
        assert stored.balance_cents == 150000
        assert len(stored.movements) == 2

    async def test_withdraw_exact_balance(self, repository, account):
        movement = await ledger_service.record_movement(
            repository, account.id, MovementKind.WITHDRAWAL, 100000, "Everything"
        )
        assert movement.balance_after_cents == 0
        assert (await repository.require(account.id)).balance_cents == 0

    async def test_one_cent_over_balance_fails(self, repository, account):
        with pytest.raises(InsufficientFundsError) as exc_info:
            await ledger_service.record_movement(
                repository, account.id, MovementKind.WITHDRAWAL, 100001, "Too much"
            )
        assert exc_info.value.available_cents == 100000

    async def test_non_positive_amount(self, repository, account):
        with pytest.raises(ValidationError):
            await ledger_service.record_movement(
                repository, account.id, MovementKind.DEPOSIT, 0, "Nothing"
            )

    async def test_unknown_account(self, repository):
        with pytest.raises(AccountNotFoundError):
            await ledger_service.record_movement(
                repository, "account_0_0", MovementKind.DEPOSIT, 100, "Lost"
            )

    async def test_inactive_account_refuses_movements(self, repository, make_draft):
        empty = await repository.create(make_draft(email="empty@example.com"))
        await repository.soft_delete(empty.id)
        with pytest.raises(ConflictError):
            await ledger_service.record_movement(
                repository, empty.id, MovementKind.DEPOSIT, 100, "Too late"
            )

    async def test_movement_is_logged(self, repository, account):
        await ledger_service.record_movement(
            repository, account.id, MovementKind.DEPOSIT, 700, "Coins"
        )
        entry = (await repository.activity_log.recent())[0]
        assert entry.action == "DEPOSIT"
        assert entry.details["amount_cents"] == 700


class TestTransfer:
    async def test_transfer_moves_money(self, repository, account, make_draft):
        other = await repository.create(make_draft(email="other@example.com"))

        debit, credit = await ledger_service.transfer(
            repository, account.id, other.account_number, 30000, "Rent"
        )

        assert debit.kind is MovementKind.TRANSFER
        assert credit.kind is MovementKind.DEPOSIT
        assert (await repository.require(account.id)).balance_cents == 70000
        assert (await repository.require(other.id)).balance_cents == 30000

    async def test_insufficient_funds_touches_neither_account(
        self, repository, account, make_draft
    ):
        other = await repository.create(make_draft(email="other@example.com"))
        with pytest.raises(InsufficientFundsError):
            await ledger_service.transfer(repository, account.id, other.account_number, 100001)

        assert (await repository.require(account.id)).balance_cents == 100000
        assert (await repository.require(other.id)).movements == []

    async def test_unknown_destination(self, repository, account):
        with pytest.raises(AccountNotFoundError):
            await ledger_service.transfer(repository, account.id, "4001-0000-0000", 100)

    async def test_same_account_rejected(self, repository, account):
        with pytest.raises(ValidationError):
            await ledger_service.transfer(repository, account.id, account.account_number, 100)


class TestLoans:
    async def test_disbursement_creates_no_movement(self, repository, account):
        loan = await ledger_service.disburse_loan(
            repository, account.id, 500000, 12.0, 12, purpose="Car"
        )

        assert loan.status is LoanStatus.ACTIVE
        assert loan.approval_date is not None
        assert loan.remaining_payments == 12
        assert loan.monthly_payment_cents > 0
        stored = await repository.require(account.id)
        assert stored.balance_cents == 100000
        assert len(stored.movements) == 1
        assert stored.loans[0].id == loan.id

    async def test_invalid_term_rejected(self, repository, account):
        with pytest.raises(ValidationError):
            await ledger_service.disburse_loan(repository, account.id, 500000, 12.0, 0)

    async def test_request_then_approve(self, repository, account):
        loan = await ledger_service.request_loan(repository, account.id, 200000, 5.0, 6)
        assert loan.status is LoanStatus.PENDING
        assert loan.approval_date is None

        approved = await ledger_service.approve_loan(repository, account.id, loan.id)
        assert approved.status is LoanStatus.ACTIVE
        assert approved.approval_date is not None

    async def test_approving_active_loan_fails(self, repository, account):
        loan = await ledger_service.disburse_loan(repository, account.id, 200000, 5.0, 6)
        with pytest.raises(InvalidStateTransitionError):
            await ledger_service.approve_loan(repository, account.id, loan.id)

    async def test_payments_until_paid(self, repository, account):
        loan = await ledger_service.disburse_loan(repository, account.id, 30000, 0, 3)

        for expected_remaining in (2, 1, 0):
            paid_loan, movement = await ledger_service.record_loan_payment(
                repository, account.id, loan.id
            )
            assert movement.kind is MovementKind.WITHDRAWAL
            assert movement.amount_cents == 10000
            assert paid_loan.remaining_payments == expected_remaining

        assert paid_loan.status is LoanStatus.PAID
        stored = await repository.require(account.id)
        assert stored.balance_cents == 70000
        with pytest.raises(ConflictError):
            await ledger_service.record_loan_payment(repository, account.id, loan.id)

    async def test_payment_without_funds(self, repository, make_draft):
        broke = await repository.create(make_draft(email="broke@example.com"))
        loan = await ledger_service.disburse_loan(repository, broke.id, 30000, 0, 3)
        with pytest.raises(InsufficientFundsError):
            await ledger_service.record_loan_payment(repository, broke.id, loan.id)
        stored = await repository.require(broke.id)
        assert stored.loans[0].remaining_payments == 3

    async def test_close_is_terminal(self, repository, account):
        loan = await ledger_service.disburse_loan(repository, account.id, 200000, 5.0, 6)
        closed = await ledger_service.close_loan(repository, account.id, loan.id)
        assert closed.status is LoanStatus.PAID

        with pytest.raises(ConflictError):
            await ledger_service.close_loan(repository, account.id, loan.id)
        with pytest.raises(ConflictError):
            await ledger_service.approve_loan(repository, account.id, loan.id)

    async def test_pending_loan_cannot_be_closed(self, repository, account):
        loan = await ledger_service.request_loan(repository, account.id, 200000, 5.0, 6)
        with pytest.raises(InvalidStateTransitionError):
            await ledger_service.close_loan(repository, account.id, loan.id)

    async def test_delete_only_non_active(self, repository, account):
        active = await ledger_service.disburse_loan(repository, account.id, 200000, 5.0, 6)
        pending = await ledger_service.request_loan(repository, account.id, 100000, 5.0, 6)

        with pytest.raises(ConflictError):
            await ledger_service.delete_loan(repository, account.id, active.id)
        await ledger_service.delete_loan(repository, account.id, pending.id)

        stored = await repository.require(account.id)
        assert [loan.id for loan in stored.loans] == [active.id]

    async def test_unknown_loan(self, repository, account):
        with pytest.raises(LoanNotFoundError):
            await ledger_service.close_loan(repository, account.id, "loan_0_0")


class TestCredits:
    async def test_draw_exactly_remaining_limit(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        await ledger_service.draw_credit(repository, account.id, credit.id, 20000)

        drawn, movement = await ledger_service.draw_credit(
            repository, account.id, credit.id, 30000
        )
        assert drawn.amount_cents == 50000
        assert drawn.available_cents == 0
        assert movement.kind is MovementKind.DEPOSIT
        assert movement.description == "Credit line draw"
        assert (await repository.require(account.id)).balance_cents == 150000

    async def test_one_cent_over_limit_fails(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        with pytest.raises(CreditLimitExceededError) as exc_info:
            await ledger_service.draw_credit(repository, account.id, credit.id, 50001)
        assert exc_info.value.available_cents == 50000

        stored = await repository.require(account.id)
        assert stored.credits[0].amount_cents == 0
        assert stored.balance_cents == 100000

    async def test_pending_credit_cannot_be_drawn(self, repository, account):
        credit = await ledger_service.open_credit(
            repository, account.id, 50000, 2.5, pending=True
        )
        assert credit.status is CreditStatus.PENDING
        with pytest.raises(ConflictError):
            await ledger_service.draw_credit(repository, account.id, credit.id, 100)

        approved = await ledger_service.approve_credit(repository, account.id, credit.id)
        assert approved.status is CreditStatus.ACTIVE
        await ledger_service.draw_credit(repository, account.id, credit.id, 100)

    async def test_repay(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        await ledger_service.draw_credit(repository, account.id, credit.id, 20000)

        repaid, movement = await ledger_service.repay_credit(
            repository, account.id, credit.id, 15000
        )
        assert repaid.amount_cents == 5000
        assert movement.kind is MovementKind.WITHDRAWAL

        with pytest.raises(ValidationError):
            await ledger_service.repay_credit(repository, account.id, credit.id, 5001)

    async def test_limit_below_drawn_fails(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        await ledger_service.draw_credit(repository, account.id, credit.id, 20000)

        with pytest.raises(CreditLimitExceededError):
            await ledger_service.adjust_credit_limit(repository, account.id, credit.id, 19999)

        adjusted = await ledger_service.adjust_credit_limit(
            repository, account.id, credit.id, 20000
        )
        assert adjusted.limit_cents == 20000
        assert adjusted.available_cents == 0

    async def test_closed_credit_is_terminal(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        await ledger_service.close_credit(repository, account.id, credit.id)

        with pytest.raises(ConflictError):
            await ledger_service.draw_credit(repository, account.id, credit.id, 100)
        with pytest.raises(ConflictError):
            await ledger_service.adjust_credit_limit(repository, account.id, credit.id, 90000)
        with pytest.raises(ConflictError):
            await ledger_service.close_credit(repository, account.id, credit.id)

    async def test_delete_only_non_active(self, repository, account):
        credit = await ledger_service.open_credit(repository, account.id, 50000, 2.5)
        with pytest.raises(ConflictError):
            await ledger_service.delete_credit(repository, account.id, credit.id)

        await ledger_service.close_credit(repository, account.id, credit.id)
        await ledger_service.delete_credit(repository, account.id, credit.id)
        assert (await repository.require(account.id)).credits == []

    async def test_unknown_credit(self, repository, account):
        with pytest.raises(CreditNotFoundError):
            await ledger_service.draw_credit(repository, account.id, "credit_0_0", 100)


class TestBalanceInvariant:
    async def test_invariant_after_mixed_operations(self, repository, account, make_draft):
        """After any sequence of ledger operations, balance == signed sum of movements."""
        other = await repository.create(make_draft(email="other@example.com"))
        credit = await ledger_service.open_credit(repository, account.id, 80000, 3.0)
        loan = await ledger_service.disburse_loan(repository, account.id, 60000, 0, 6)

        await ledger_service.record_movement(
            repository, account.id, MovementKind.DEPOSIT, 12345, "Salary"
        )
        await ledger_service.draw_credit(repository, account.id, credit.id, 40000)
        await ledger_service.transfer(repository, account.id, other.account_number, 33333)
        await ledger_service.record_loan_payment(repository, account.id, loan.id)
        await ledger_service.repay_credit(repository, account.id, credit.id, 1000)
        await repository.update(account.id, {"balance_cents": 50000})
        for _ in range(3):
            await ledger_service.record_movement(
                repository, account.id, MovementKind.WITHDRAWAL, 999, "Coffee"
            )
        with pytest.raises(InsufficientFundsError):
            await ledger_service.record_movement(
                repository, account.id, MovementKind.WITHDRAWAL, 10**9, "Yacht"
            )

        for stored in await repository.list_all():
            assert stored.balance_cents == stored.computed_balance_cents()
            assert stored.balance_cents >= 0
            if stored.movements:
                assert stored.movements[-1].balance_after_cents == stored.balance_cents


class _BrokenWritesStorage(MemoryStorage):
    """Fails account writes for the ids in `broken` once armed."""

    def __init__(self) -> None:
        super().__init__()
        self.broken: set[str] = set()

    async def hset(self, key, field, value):
        if field in self.broken:
            raise StorageError("write failed", operation="hset")
        await super().hset(key, field, value)


class TestWriteFailures:
    @pytest.fixture
    def broken_storage(self):
        return _BrokenWritesStorage()

    @pytest.fixture
    def broken_repository(self, broken_storage):
        return AccountRepository(broken_storage)

    async def test_failed_write_propagates(self, broken_storage, broken_repository, make_draft):
        account = await broken_repository.create(make_draft(initial_balance_cents=10000))
        broken_storage.broken.add(account.id)

        with pytest.raises(StorageError):
            await ledger_service.record_movement(
                broken_repository, account.id, MovementKind.WITHDRAWAL, 4000, "ATM"
            )

        stored = await broken_repository.require(account.id)
        assert stored.balance_cents == 10000
        assert len(stored.movements) == 1

    async def test_failed_transfer_credit_propagates(
        self, broken_storage, broken_repository, make_draft
    ):
        source = await broken_repository.create(make_draft(initial_balance_cents=10000))
        destination = await broken_repository.create(make_draft(email="dest@example.com"))
        broken_storage.broken.add(destination.id)

        with pytest.raises(StorageError):
            await ledger_service.transfer(
                broken_repository, source.id, destination.account_number, 3000
            )

        # Two writes, no cross-account atomicity: the debit is already stored
        assert (await broken_repository.require(source.id)).balance_cents == 7000
        assert (await broken_repository.require(destination.id)).movements == []
