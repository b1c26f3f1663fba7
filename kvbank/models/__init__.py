"""
Ledger model: pydantic entities persisted as JSON documents.

All models are imported here so other modules can import from
kvbank.models directly.
"""

from kvbank.models.account import Account, AccountDraft, AccountType  # noqa: F401
from kvbank.models.admin import ActivityEntry, AdminInfo  # noqa: F401
from kvbank.models.credit import Credit, CreditStatus  # noqa: F401
from kvbank.models.loan import Loan, LoanStatus, monthly_payment_cents  # noqa: F401
from kvbank.models.movement import Movement, MovementKind  # noqa: F401
