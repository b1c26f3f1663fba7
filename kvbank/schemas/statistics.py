"""
Bank-wide statistics. All totals are integer cents.
"""

from pydantic import BaseModel


class Statistics(BaseModel):
    total_accounts: int = 0
    total_balance_cents: int = 0
    active_loans: int = 0
    active_credits: int = 0
    total_loan_amount_cents: int = 0
    total_credit_limit_cents: int = 0
