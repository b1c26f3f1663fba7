"""
Storage adapters.

build_storage() picks the adapter named by settings.STORAGE_BACKEND. The
application factory calls it once and injects the result into the
repository; nothing else in the codebase constructs an adapter.
"""

from kvbank.config import Settings
from kvbank.exceptions import ValidationError
from kvbank.storage.base import StorageAdapter
from kvbank.storage.memory import MemoryStorage


def build_storage(settings: Settings) -> StorageAdapter:
    """Create the storage adapter configured for this process."""
    if settings.STORAGE_BACKEND == "memory":
        return MemoryStorage()

    if settings.STORAGE_BACKEND == "redis":
        if not settings.UPSTASH_REDIS_REST_URL or not settings.UPSTASH_REDIS_REST_TOKEN:
            raise ValidationError(
                "STORAGE_BACKEND=redis requires UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN",
                fields=["UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN"],
            )
        from kvbank.storage.upstash import UpstashStorage

        return UpstashStorage(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )

    from kvbank.storage.sql import SQLStorage

    return SQLStorage(settings.DATABASE_URL, echo=settings.DEBUG)


__all__ = ["StorageAdapter", "MemoryStorage", "build_storage"]
