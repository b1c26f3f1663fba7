"""
Transfers router — money transfers between accounts.

Endpoints:
  POST /transfers — Transfer money from one account to another

A transfer records two movements:
  1. A `transfer` debit on the source account
  2. A `deposit` on the destination account

The source account must belong to the caller (or the caller is the
administrator); the destination is addressed by account number and may
belong to anyone.
"""

from fastapi import APIRouter, Depends, status

from kvbank.dependencies import Principal, authorize_account, get_current_principal, get_repository
from kvbank.schemas.movement import MovementResponse, TransferRequest, TransferResponse
from kvbank.services import ledger_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between accounts",
)
async def create_transfer(
    request: TransferRequest,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Transfer money to another account.

    - **from_account_id**: Must belong to the authenticated member
    - **to_account_number**: Destination in 4001-XXXX-XXXX form
    - **amount_cents**: Positive integer in cents (e.g., $50.00 = 5000)
    - Cannot transfer to the same account
    """
    authorize_account(principal, request.from_account_id)
    debit, credit = await ledger_service.transfer(
        repository,
        request.from_account_id,
        request.to_account_number,
        request.amount_cents,
        request.description,
    )
    return TransferResponse(
        debit_movement=MovementResponse.model_validate(debit),
        credit_movement=MovementResponse.model_validate(credit),
        amount_cents=request.amount_cents,
        from_account_id=request.from_account_id,
        to_account_number=request.to_account_number,
    )
