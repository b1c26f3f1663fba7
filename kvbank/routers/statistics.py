"""
Statistics router — bank-wide totals for the admin dashboard.

Endpoints:
  GET /statistics — Totals over active accounts (admin)
"""

from fastapi import APIRouter, Depends

from kvbank.dependencies import Principal, get_repository, require_admin
from kvbank.schemas.statistics import Statistics
from kvbank.services import statistics_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.get(
    "",
    response_model=Statistics,
    summary="Get bank statistics",
)
async def get_statistics(
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """Computed on every request; never cached."""
    return await statistics_service.compute_statistics(repository)
