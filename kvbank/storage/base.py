"""
Storage adapter interface and key layout.

The banking services only ever talk to storage through the async primitives
below, which mirror the subset of Redis commands the data model needs:

    get / set              — scalar documents (admin info, backups)
    hget / hset / hgetall  — the account hash (id -> Account JSON)
    hincrby                — monotonic counters for id generation
    lpush / ltrim / lrange — per-day activity log lists (newest first)

Every implementation must raise kvbank.exceptions.StorageError for backend
failures; raw client exceptions never escape an adapter.

Key layout:
    bank:accounts          hash   account id -> serialized Account
    bank:admin             scalar serialized AdminInfo
    bank:counters          hash   id kind -> counter
    bank:logs:YYYY-MM-DD   list   serialized ActivityEntry, newest first
    bank:backup:<ms>       scalar serialized backup snapshot
"""

from abc import ABC, abstractmethod

ACCOUNTS_KEY = "bank:accounts"
ADMIN_KEY = "bank:admin"
COUNTERS_KEY = "bank:counters"
LOGS_KEY_PREFIX = "bank:logs:"
BACKUP_KEY_PREFIX = "bank:backup:"


class StorageAdapter(ABC):
    """Async key-value primitives over string keys and string values."""

    async def initialize(self) -> None:
        """Prepare the backend (create tables, check connectivity)."""

    async def close(self) -> None:
        """Release connections held by the adapter."""

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None: ...

    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> None: ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Return all fields of a hash, in insertion order."""

    @abstractmethod
    async def hincrby(self, key: str, field: str, amount: int = 1) -> int: ...

    @abstractmethod
    async def lpush(self, key: str, value: str) -> int:
        """Prepend a value; return the new list length."""

    @abstractmethod
    async def ltrim(self, key: str, start: int, stop: int) -> None:
        """Keep only elements start..stop (inclusive, Redis semantics)."""

    @abstractmethod
    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Return elements start..stop (inclusive, -1 means the last one)."""


def slice_bounds(length: int, start: int, stop: int) -> tuple[int, int]:
    """Convert inclusive Redis-style list indices into Python slice bounds."""
    if start < 0:
        start = max(length + start, 0)
    if stop < 0:
        stop = length + stop
    return start, stop + 1
