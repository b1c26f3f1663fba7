"""
Activity log: a per-day, fixed-capacity audit trail.

Each calendar day (UTC) has its own list under `bank:logs:YYYY-MM-DD`. New
entries are pushed to the head and the list is trimmed to the newest
ACTIVITY_LOG_CAPACITY entries (100 by default), so older entries of a busy
day are dropped. The log is a bounded ring buffer, not a complete history;
the authoritative history of money is each account's movement list.

Failure policy:
  Recording happens after the primary write has already been persisted, so
  a failed audit push is logged and does not fail the operation. Reads
  degrade to an empty list; malformed entries are skipped.
"""

import logging
from datetime import date

from pydantic import ValidationError as PydanticValidationError

from kvbank.exceptions import StorageError
from kvbank.models.account import utcnow
from kvbank.models.admin import ActivityEntry
from kvbank.storage.base import LOGS_KEY_PREFIX, StorageAdapter

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


def log_key(day: date) -> str:
    return f"{LOGS_KEY_PREFIX}{day.isoformat()}"


class ActivityLog:
    def __init__(self, storage: StorageAdapter, capacity: int = DEFAULT_CAPACITY) -> None:
        self._storage = storage
        self.capacity = capacity

    async def record(
        self,
        action: str,
        account_id: str | None = None,
        details: dict | None = None,
    ) -> ActivityEntry:
        """Push one entry onto today's list and trim it to capacity."""
        entry = ActivityEntry(
            action=action,
            account_id=account_id,
            timestamp=utcnow(),
            details=details or {},
        )
        key = log_key(entry.timestamp.date())
        try:
            await self._storage.lpush(key, entry.model_dump_json())
            await self._storage.ltrim(key, 0, self.capacity - 1)
        except StorageError:
            logger.warning(
                "Could not record activity %s",
                action,
                extra={"operation": "activity_log.record", "account_id": account_id},
                exc_info=True,
            )
        return entry

    async def recent(self, day: date | None = None, limit: int | None = None) -> list[ActivityEntry]:
        """Return the day's entries, newest first."""
        day = day or utcnow().date()
        stop = (limit or self.capacity) - 1
        try:
            raw_entries = await self._storage.lrange(log_key(day), 0, stop)
        except StorageError:
            logger.warning(
                "Could not read activity log for %s", day, extra={"operation": "activity_log.recent"},
                exc_info=True,
            )
            return []
        entries = []
        for raw in raw_entries:
            try:
                entries.append(ActivityEntry.model_validate_json(raw))
            except PydanticValidationError:
                logger.warning("Skipping malformed activity entry in %s", log_key(day))
        return entries
