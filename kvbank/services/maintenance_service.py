"""
Maintenance service — demo data and backup snapshots.

initialize_default_data() seeds an empty store with two sample customers so
a fresh deployment has something to show. All balances, loans and credit
lines are created through the regular ledger operations, so the sample
accounts satisfy the same invariants as real ones.

create_backup() writes a point-in-time JSON snapshot of every account, the
administrator profile (without its password hash) and the current
statistics under `bank:backup:{unix_ms}`.
"""

import json
import logging
import time

from kvbank.config import get_settings
from kvbank.models.account import AccountDraft, AccountType, utcnow
from kvbank.models.movement import MovementKind
from kvbank.services import auth_service, ledger_service, statistics_service
from kvbank.services.account_repository import AccountRepository
from kvbank.storage.base import BACKUP_KEY_PREFIX

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = "1.0"


async def initialize_default_data(repository: AccountRepository) -> int:
    """
    Create the sample accounts if the store holds no accounts yet.

    Returns:
        The number of accounts created (0 when data already exists).
    """
    if await repository.list_all():
        logger.info("Accounts already present; skipping demo data")
        return 0

    valentina = await repository.create(
        AccountDraft(
            full_name="Valentina García",
            email="valentina@email.com",
            account_type=AccountType.SAVINGS,
            phone="3101234567",
            address="Calle 123 # 45-67",
            password="123456",
            initial_balance_cents=125000,
        )
    )
    await ledger_service.record_movement(
        repository, valentina.id, MovementKind.WITHDRAWAL, 25000, "ATM withdrawal"
    )
    await ledger_service.disburse_loan(
        repository, valentina.id, 1250000, 1.8, 24, purpose="Housing"
    )
    credit = await ledger_service.open_credit(
        repository, valentina.id, limit_cents=250000, interest_rate=2.5, credit_score=750
    )
    await ledger_service.draw_credit(repository, valentina.id, credit.id, 50000)

    await repository.create(
        AccountDraft(
            full_name="Carlos Pérez",
            email="carlos@email.com",
            account_type=AccountType.CHECKING,
            phone="3209876543",
            address="Carrera 789 # 10-11",
            password="abcdef",
            initial_balance_cents=50000,
        )
    )

    logger.info("Demo data initialized")
    return 2


async def create_backup(repository: AccountRepository) -> str:
    """
    Snapshot all accounts, the admin profile and statistics.

    Returns:
        The storage key the snapshot was written to.
    """
    accounts = await repository.list_all()
    admin = await auth_service.get_admin_info(repository)
    stats = await statistics_service.compute_statistics(repository)

    snapshot = {
        "timestamp": utcnow().isoformat(),
        "accounts": [account.model_dump(mode="json") for account in accounts],
        "admin": admin.model_dump(mode="json", exclude={"password_hash"}),
        "stats": stats.model_dump(),
        "version": BACKUP_FORMAT_VERSION,
        "app_version": get_settings().APP_VERSION,
    }

    key = f"{BACKUP_KEY_PREFIX}{int(time.time() * 1000)}"
    await repository.save_document(key, json.dumps(snapshot))
    await repository.activity_log.record(
        "CREATE_BACKUP", details={"key": key, "accounts": len(accounts)}
    )
    logger.info("Backup written to %s", key)
    return key
