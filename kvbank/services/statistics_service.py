"""
Statistics service — bank-wide totals for the admin dashboard.

Figures are computed on demand with one pass over the active accounts and
are never cached. Inactive accounts are excluded entirely, including their
loans and credit lines. Only `active` loans and credits count.
"""

from kvbank.schemas.statistics import Statistics
from kvbank.services.account_repository import AccountRepository


async def compute_statistics(repository: AccountRepository) -> Statistics:
    stats = Statistics()
    for account in await repository.list_all():
        if not account.is_active:
            continue
        stats.total_accounts += 1
        stats.total_balance_cents += account.balance_cents
        for loan in account.loans:
            if loan.is_active:
                stats.active_loans += 1
                stats.total_loan_amount_cents += loan.amount_cents
        for credit in account.credits:
            if credit.is_active:
                stats.active_credits += 1
                stats.total_credit_limit_cents += credit.limit_cents
    return stats
