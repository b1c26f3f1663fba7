"""
Loans router — loan disbursement and lifecycle endpoints.

Endpoints:
  POST   /loans                                   — Disburse an active loan (admin)
  POST   /loans/request                           — Request a loan (owner)
  POST   /loans/{account_id}/{loan_id}/approve    — pending → active (admin)
  POST   /loans/{account_id}/{loan_id}/payments   — Pay one installment (owner or admin)
  POST   /loans/{account_id}/{loan_id}/close      — active → paid (admin)
  DELETE /loans/{account_id}/{loan_id}            — Remove a non-active loan (admin)

Disbursement does not credit the principal to the account balance.
"""

from fastapi import APIRouter, Depends, status

from kvbank.dependencies import (
    Principal,
    authorize_account,
    get_current_principal,
    get_repository,
    require_admin,
)
from kvbank.schemas.loan import LoanCreateRequest, LoanPaymentResponse, LoanRequest, LoanResponse
from kvbank.schemas.movement import MovementResponse
from kvbank.services import ledger_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.post(
    "",
    response_model=LoanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Disburse a loan",
)
async def disburse_loan(
    request: LoanCreateRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """The loan is active immediately; its monthly payment is fixed now."""
    return await ledger_service.disburse_loan(
        repository,
        request.account_id,
        request.amount_cents,
        request.interest_rate,
        request.term_months,
        request.purpose,
    )


@router.post(
    "/request",
    response_model=LoanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a loan",
)
async def request_loan(
    request: LoanRequest,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """Creates a pending loan that waits for administrator approval."""
    authorize_account(principal, request.account_id)
    return await ledger_service.request_loan(
        repository,
        request.account_id,
        request.amount_cents,
        request.interest_rate,
        request.term_months,
        request.purpose,
    )


@router.post(
    "/{account_id}/{loan_id}/approve",
    response_model=LoanResponse,
    summary="Approve a pending loan",
)
async def approve_loan(
    account_id: str,
    loan_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.approve_loan(repository, account_id, loan_id)


@router.post(
    "/{account_id}/{loan_id}/payments",
    response_model=LoanPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pay one loan installment",
)
async def pay_loan(
    account_id: str,
    loan_id: str,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Withdraws the monthly payment from the account balance. The loan is
    marked paid after the last installment.
    """
    authorize_account(principal, account_id)
    loan, movement = await ledger_service.record_loan_payment(repository, account_id, loan_id)
    return LoanPaymentResponse(
        loan=LoanResponse.model_validate(loan),
        movement=MovementResponse.model_validate(movement),
    )


@router.post(
    "/{account_id}/{loan_id}/close",
    response_model=LoanResponse,
    summary="Mark a loan as paid",
)
async def close_loan(
    account_id: str,
    loan_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.close_loan(repository, account_id, loan_id)


@router.delete(
    "/{account_id}/{loan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a pending or paid loan",
)
async def delete_loan(
    account_id: str,
    loan_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    await ledger_service.delete_loan(repository, account_id, loan_id)
