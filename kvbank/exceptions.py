"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate them
into HTTP responses with a consistent body:

    {"detail": "...", "error_type": "...", ...}

Exception hierarchy:
    BankAPIError (base)
    ├── ValidationError              — missing or malformed input
    ├── NotFoundError                — unknown id / account number / email
    │   ├── AccountNotFoundError
    │   ├── LoanNotFoundError
    │   └── CreditNotFoundError
    ├── InsufficientFundsError       — withdrawal would drive balance negative
    ├── CreditLimitExceededError     — draw or limit change over the limit
    ├── ConflictError                — blocked by a business rule
    │   ├── DuplicateEmailError
    │   └── InvalidStateTransitionError
    ├── UnauthorizedAccessError      — caller does not own the resource
    ├── InvalidCredentialsError      — login failed (reason not disclosed)
    └── StorageError                 — storage backend failure
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all domain errors."""

    status_code = 400
    error_type = "bank_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(BankAPIError):
    """Raised when input is missing or malformed. Never retried."""

    status_code = 400
    error_type = "validation_error"

    def __init__(self, detail: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(detail)


class NotFoundError(BankAPIError):
    """Raised when a requested record does not exist."""

    status_code = 404
    error_type = "not_found"


class AccountNotFoundError(NotFoundError):
    """Raised when an account id, number or email does not resolve."""

    error_type = "account_not_found"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account {account_ref} not found")


class LoanNotFoundError(NotFoundError):
    error_type = "loan_not_found"

    def __init__(self, account_id: str, loan_id: str):
        self.account_id = account_id
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} not found on account {account_id}")


class CreditNotFoundError(NotFoundError):
    error_type = "credit_not_found"

    def __init__(self, account_id: str, credit_id: str):
        self.account_id = account_id
        self.credit_id = credit_id
        super().__init__(f"Credit {credit_id} not found on account {account_id}")


class InsufficientFundsError(BankAPIError):
    """
    Raised when a withdrawal would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested_cents: The amount the caller tried to withdraw.
        available_cents: The current balance of the account.
    """

    status_code = 422  # the request was valid but business rules reject it
    error_type = "insufficient_funds"

    def __init__(self, account_id: str, requested_cents: int, available_cents: int):
        self.account_id = account_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient funds: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )


class CreditLimitExceededError(BankAPIError):
    """
    Raised when a credit draw or limit change would leave the drawn amount
    above the credit limit.
    """

    status_code = 422
    error_type = "credit_limit_exceeded"

    def __init__(self, credit_id: str, requested_cents: int, available_cents: int):
        self.credit_id = credit_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Credit limit exceeded on {credit_id}: requested {requested_cents} "
            f"cents, available {available_cents} cents"
        )


class ConflictError(BankAPIError):
    """Raised when a business rule blocks the operation (e.g. deleting a funded account)."""

    status_code = 409
    error_type = "conflict"


class DuplicateEmailError(ConflictError):
    """Raised when an active account already uses the email."""

    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidStateTransitionError(ConflictError):
    """Raised on a loan/credit status change the lifecycle does not allow."""

    error_type = "invalid_state_transition"

    def __init__(self, entity: str, entity_id: str, current: str, target: str):
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"{entity} {entity_id} cannot move from '{current}' to '{target}'"
        )


class UnauthorizedAccessError(BankAPIError):
    """Raised when a user attempts to access a resource they don't own."""

    status_code = 403
    error_type = "unauthorized_access"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class InvalidCredentialsError(BankAPIError):
    """Raised when login fails. The message never says which part was wrong."""

    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class StorageError(BankAPIError):
    """
    Raised when the storage backend fails.

    Adapters wrap backend exceptions in this type so raw client errors never
    cross the repository boundary. The HTTP response carries a generic
    message; the original exception is chained for the logs.
    """

    status_code = 503
    error_type = "storage_error"

    def __init__(self, detail: str = "Storage backend unavailable", operation: str | None = None):
        self.operation = operation
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    The two amount-bearing errors get dedicated handlers so clients can show
    the requested vs. available figures; every other domain error maps
    through its class-level status_code and error_type.
    """

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "requested_cents": exc.requested_cents,
                "available_cents": exc.available_cents,
            },
        )

    @app.exception_handler(CreditLimitExceededError)
    async def credit_limit_handler(
        request: Request, exc: CreditLimitExceededError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "requested_cents": exc.requested_cents,
                "available_cents": exc.available_cents,
            },
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type, "fields": exc.fields},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        # Backend details stay in the server log
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Storage backend unavailable", "error_type": exc.error_type},
        )

    @app.exception_handler(BankAPIError)
    async def bank_api_error_handler(
        request: Request, exc: BankAPIError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )
