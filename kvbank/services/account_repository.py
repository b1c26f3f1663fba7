"""
Account repository — CRUD and queries over the account collection.

This is the only component that reads or writes account documents. It wraps
a StorageAdapter the way an AsyncSession wraps a database connection: the
application factory builds one per process and FastAPI injects it into the
routers (see kvbank.dependencies.get_repository). Tests build a fresh one
around a MemoryStorage.

This module handles:
  - Account creation (unique id and account number, initial deposit)
  - Lookups by id, account number and email
  - Profile updates, with balance edits turned into corrective movements
  - Soft deletion guarded by business rules
  - Id generation from the atomic counters hash
  - The administrator profile and backup snapshots (scalar documents kept
    next to the account hash)

Every mutating operation appends an entry to the activity log.

Lookups return None for unknown records; callers that need the record use
require(), which raises AccountNotFoundError. Lookups cover active and
inactive accounts alike: callers that only want active accounts check
`is_active` themselves.
"""

import logging
import random
import time
import uuid

from pydantic import ValidationError as PydanticValidationError

from kvbank.exceptions import (
    AccountNotFoundError,
    ConflictError,
    DuplicateEmailError,
    StorageError,
    ValidationError,
)
from kvbank.models.account import Account, AccountDraft, AccountType, utcnow
from kvbank.models.admin import AdminInfo
from kvbank.models.movement import MovementKind
from kvbank.security import hash_password
from kvbank.services.activity_log import ActivityLog
from kvbank.storage.base import ACCOUNTS_KEY, ADMIN_KEY, COUNTERS_KEY, StorageAdapter

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_PREFIX = "4001"
MAX_ACCOUNT_NUMBER_ATTEMPTS = 100

INITIAL_DEPOSIT_DESCRIPTION = "Initial deposit"
ADJUSTMENT_DESCRIPTION = "Administrative adjustment"

REQUIRED_FIELDS = ("full_name", "email", "account_type")
PROFILE_FIELDS = frozenset({"full_name", "email", "phone", "address", "account_type", "password"})
UPDATABLE_FIELDS = PROFILE_FIELDS | {"balance_cents"}


def _generate_account_number() -> str:
    """
    Generate a random account number: 4001-XXXX-XXXX.

    Each group is an independent, zero-padded random 4-digit number.
    Uniqueness is checked by the caller.
    """
    return (
        f"{ACCOUNT_NUMBER_PREFIX}-{random.randint(0, 9999):04d}-{random.randint(0, 9999):04d}"
    )


class AccountRepository:
    def __init__(self, storage: StorageAdapter, activity_log: ActivityLog | None = None) -> None:
        self.storage = storage
        self.activity_log = activity_log or ActivityLog(storage)

    # -----------------------------------------------------------------------
    # Ids and account numbers
    # -----------------------------------------------------------------------

    async def generate_id(self, kind: str) -> str:
        """
        Generate an id of the form {kind}_{unix_ms}_{counter}.

        The counter comes from an atomic increment on the counters hash.
        If the increment fails, a random suffix is used instead so that id
        generation never blocks a write.
        """
        timestamp = int(time.time() * 1000)
        try:
            counter = await self.storage.hincrby(COUNTERS_KEY, kind, 1)
        except StorageError:
            logger.warning("Counter increment failed for %s; using random suffix", kind)
            return f"{kind}_{timestamp}_{uuid.uuid4().hex[:9]}"
        return f"{kind}_{timestamp}_{counter}"

    async def _generate_unique_account_number(self) -> str:
        taken = {account.account_number for account in await self.list_all()}
        for _ in range(MAX_ACCOUNT_NUMBER_ATTEMPTS):
            account_number = _generate_account_number()
            if account_number not in taken:
                return account_number
        # 10^8 possible numbers; only reachable with a nearly full number space
        raise StorageError("Failed to generate a unique account number", operation="create")

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def _decode(self, raw: str) -> Account:
        try:
            return Account.model_validate_json(raw)
        except PydanticValidationError as exc:
            logger.error("Stored account document is malformed: %s", exc)
            raise StorageError("Stored account document is malformed", operation="decode") from exc

    async def get_by_id(self, account_id: str) -> Account | None:
        raw = await self.storage.hget(ACCOUNTS_KEY, account_id)
        return self._decode(raw) if raw else None

    async def require(self, account_id: str) -> Account:
        """Like get_by_id, but raises AccountNotFoundError for unknown ids."""
        account = await self.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def list_all(self) -> list[Account]:
        """Every account, active and inactive, in insertion order."""
        documents = await self.storage.hgetall(ACCOUNTS_KEY)
        return [self._decode(raw) for raw in documents.values()]

    async def get_by_account_number(self, account_number: str) -> Account | None:
        for account in await self.list_all():
            if account.account_number == account_number:
                return account
        return None

    async def get_by_email(self, email: str) -> Account | None:
        """Find an account by email (case-insensitive), preferring an active one."""
        email = email.strip().lower()
        matches = [account for account in await self.list_all() if account.email == email]
        for account in matches:
            if account.is_active:
                return account
        return matches[0] if matches else None

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def _write(self, account: Account, operation: str) -> None:
        try:
            await self.storage.hset(ACCOUNTS_KEY, account.id, account.model_dump_json())
        except StorageError:
            logger.error(
                "Failed to persist account %s",
                account.id,
                extra={
                    "operation": operation,
                    "account_id": account.id,
                    "balance_cents": account.balance_cents,
                },
            )
            raise

    async def save(self, account: Account, action: str, details: dict | None = None) -> Account:
        """Persist a mutated account and record the action in the activity log."""
        await self._write(account, action)
        await self.activity_log.record(action, account.id, details)
        return account

    async def create(self, draft: AccountDraft) -> Account:
        """
        Create a new account.

        Assigns the id, a unique account number and timestamps. A positive
        initial balance is recorded as a single "Initial deposit" movement.

        Raises:
            ValidationError: If full_name, email or account_type is missing,
                or the initial balance is negative.
            DuplicateEmailError: If an active account already uses the email.
        """
        missing = [name for name in REQUIRED_FIELDS if not _present(getattr(draft, name))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)
        if draft.initial_balance_cents < 0:
            raise ValidationError(
                "Initial balance cannot be negative", fields=["initial_balance_cents"]
            )

        email = draft.email.strip().lower()
        existing = await self.get_by_email(email)
        if existing is not None and existing.is_active:
            raise DuplicateEmailError(email)

        account = Account(
            id=await self.generate_id("account"),
            account_number=await self._generate_unique_account_number(),
            full_name=draft.full_name.strip(),
            email=email,
            phone=draft.phone,
            address=draft.address,
            password_hash=hash_password(draft.password) if draft.password else None,
            account_type=draft.account_type,
        )

        if draft.initial_balance_cents > 0:
            account.post_movement(
                await self.generate_id("movement"),
                MovementKind.DEPOSIT,
                draft.initial_balance_cents,
                INITIAL_DEPOSIT_DESCRIPTION,
                when=account.created_at,
            )

        await self.save(
            account,
            "CREATE_ACCOUNT",
            {"account_number": account.account_number, "full_name": account.full_name},
        )
        logger.info("Created account %s (%s)", account.id, account.account_number)
        return account

    async def update(self, account_id: str, fields: dict) -> Account:
        """
        Merge profile fields into a stored account.

        A `balance_cents` that differs from the stored balance is never
        written directly: the difference is posted as an "Administrative
        adjustment" deposit or withdrawal, so the balance keeps matching the
        movement history. Fields set to None are ignored.

        Raises:
            AccountNotFoundError: If the account doesn't exist.
            ValidationError: For immutable/unknown fields or invalid values.
            DuplicateEmailError: If the new email belongs to another active account.
            ConflictError: If the balance changes on a deactivated account.
        """
        rejected = sorted(set(fields) - UPDATABLE_FIELDS)
        if rejected:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(rejected)}", fields=rejected
            )

        changes = {name: value for name, value in fields.items() if value is not None}
        account = await self.require(account_id)

        for name in ("full_name", "email"):
            if name in changes and not _present(changes[name]):
                raise ValidationError(f"{name} cannot be blank", fields=[name])

        if "email" in changes:
            email = changes["email"].strip().lower()
            if email != account.email:
                other = await self.get_by_email(email)
                if other is not None and other.is_active and other.id != account.id:
                    raise DuplicateEmailError(email)
            account.email = email

        if "account_type" in changes:
            try:
                account.account_type = AccountType(changes["account_type"])
            except ValueError:
                raise ValidationError(
                    f"Unknown account type: {changes['account_type']}", fields=["account_type"]
                ) from None

        if "full_name" in changes:
            account.full_name = changes["full_name"].strip()
        if "phone" in changes:
            account.phone = changes["phone"]
        if "address" in changes:
            account.address = changes["address"]
        if "password" in changes:
            account.password_hash = hash_password(changes["password"])

        adjustment_cents = 0
        target_balance = changes.get("balance_cents")
        if target_balance is not None and target_balance != account.balance_cents:
            if target_balance < 0:
                raise ValidationError("Balance cannot be negative", fields=["balance_cents"])
            if not account.is_active:
                raise ConflictError(f"Account {account_id} is inactive")
            adjustment_cents = target_balance - account.balance_cents
            kind = MovementKind.DEPOSIT if adjustment_cents > 0 else MovementKind.WITHDRAWAL
            account.post_movement(
                await self.generate_id("movement"),
                kind,
                abs(adjustment_cents),
                ADJUSTMENT_DESCRIPTION,
            )

        account.updated_at = utcnow()
        # Never put the password (or its hash) in the audit trail
        changed = sorted(name for name in changes if name != "password")
        if "password" in changes:
            changed.append("password_changed")
        await self.save(
            account,
            "UPDATE_ACCOUNT",
            {"changes": changed, "balance_adjustment_cents": adjustment_cents},
        )
        return account

    async def soft_delete(self, account_id: str) -> Account:
        """
        Deactivate an account (is_active = False). Nothing is removed.

        Raises:
            AccountNotFoundError: If the account doesn't exist.
            ConflictError: If the account still holds money or has an
                active loan; these must be settled or moved out first.
        """
        account = await self.require(account_id)
        if not account.is_active:
            return account

        if account.balance_cents > 0:
            raise ConflictError(
                f"Account {account_id} still holds {account.balance_cents} cents; "
                "withdraw or transfer the balance first"
            )
        if account.has_active_loans():
            raise ConflictError(f"Account {account_id} has an active loan")

        account.is_active = False
        account.updated_at = utcnow()
        await self.save(account, "DELETE_ACCOUNT", {"account_number": account.account_number})
        logger.info("Deactivated account %s", account_id)
        return account

    # -----------------------------------------------------------------------
    # Administrator profile and snapshots
    # -----------------------------------------------------------------------

    async def get_admin_info(self) -> AdminInfo | None:
        raw = await self.storage.get(ADMIN_KEY)
        if not raw:
            return None
        try:
            return AdminInfo.model_validate_json(raw)
        except PydanticValidationError as exc:
            logger.error("Stored admin document is malformed: %s", exc)
            raise StorageError("Stored admin document is malformed", operation="decode") from exc

    async def save_admin_info(self, admin: AdminInfo) -> AdminInfo:
        await self.storage.set(ADMIN_KEY, admin.model_dump_json())
        return admin

    async def save_document(self, key: str, payload: str) -> None:
        await self.storage.set(key, payload)


def _present(value) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None
