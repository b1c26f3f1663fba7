"""
Tests for the storage adapters.

The same behavioral tests run against MemoryStorage and SQLStorage (on an
in-memory SQLite database), so both honour the Redis semantics the
services rely on:
  - Hash fields come back in insertion order
  - hincrby is monotonic and starts from zero
  - lpush prepends; ltrim/lrange use inclusive, negative-aware indices

The Upstash adapter is exercised with a stand-in client to check error
translation.
"""

import httpx
import pytest
import pytest_asyncio
from upstash_redis.errors import UpstashError

from kvbank.exceptions import StorageError
from kvbank.storage.memory import MemoryStorage
from kvbank.storage.sql import SQLStorage
from kvbank.storage.upstash import UpstashStorage


@pytest_asyncio.fixture(params=["memory", "sql"])
async def adapter(request):
    if request.param == "memory":
        yield MemoryStorage()
        return
    sql_storage = SQLStorage("sqlite+aiosqlite://")
    await sql_storage.initialize()
    yield sql_storage
    await sql_storage.close()


class TestScalars:
    async def test_missing_key_is_none(self, adapter):
        assert await adapter.get("bank:admin") is None

    async def test_set_overwrites(self, adapter):
        await adapter.set("bank:admin", "first")
        await adapter.set("bank:admin", "second")
        assert await adapter.get("bank:admin") == "second"


class TestHashes:
    async def test_hset_and_hget(self, adapter):
        await adapter.hset("bank:accounts", "a1", "doc-1")
        assert await adapter.hget("bank:accounts", "a1") == "doc-1"
        assert await adapter.hget("bank:accounts", "missing") is None

    async def test_hgetall_keeps_insertion_order(self, adapter):
        for field in ("c", "a", "b"):
            await adapter.hset("bank:accounts", field, f"doc-{field}")
        # Overwriting an existing field keeps its position
        await adapter.hset("bank:accounts", "c", "doc-c2")

        result = await adapter.hgetall("bank:accounts")
        assert list(result) == ["c", "a", "b"]
        assert result["c"] == "doc-c2"

    async def test_hgetall_missing_key(self, adapter):
        assert await adapter.hgetall("bank:nothing") == {}

    async def test_hincrby_counts_up(self, adapter):
        assert await adapter.hincrby("bank:counters", "account", 1) == 1
        assert await adapter.hincrby("bank:counters", "account", 1) == 2
        assert await adapter.hincrby("bank:counters", "loan", 5) == 5


class TestLists:
    async def test_lpush_prepends(self, adapter):
        for value in ("one", "two", "three"):
            length = await adapter.lpush("bank:logs:2024-01-01", value)
        assert length == 3
        assert await adapter.lrange("bank:logs:2024-01-01", 0, -1) == ["three", "two", "one"]

    async def test_lrange_bounds_are_inclusive(self, adapter):
        for value in ("a", "b", "c", "d"):
            await adapter.lpush("log", value)
        assert await adapter.lrange("log", 0, 1) == ["d", "c"]
        assert await adapter.lrange("log", 1, 2) == ["c", "b"]
        assert await adapter.lrange("log", 0, 100) == ["d", "c", "b", "a"]

    async def test_ltrim_keeps_newest(self, adapter):
        for index in range(5):
            await adapter.lpush("log", str(index))
        await adapter.ltrim("log", 0, 2)
        assert await adapter.lrange("log", 0, -1) == ["4", "3", "2"]

    async def test_missing_list_is_empty(self, adapter):
        await adapter.ltrim("nothing", 0, 10)
        assert await adapter.lrange("nothing", 0, -1) == []


class _FailingClient:
    """Stands in for upstash_redis.asyncio.Redis; every command fails."""

    def __getattr__(self, name):
        async def command(*args, **kwargs):
            raise httpx.ConnectError("connection refused")

        return command


class _BytesClient:
    """Returns raw bytes like some Redis client versions do."""

    async def get(self, key):
        return b"stored"

    async def hgetall(self, key):
        return [b"a1", b"doc-1", b"a2", b"doc-2"]


class _RejectingClient:
    """The server answers but rejects the command."""

    async def hset(self, key, field=None, value=None):
        raise UpstashError("WRONGTYPE Operation against a key holding the wrong kind of value")


class TestSQLStorageErrors:
    async def test_missing_tables_become_storage_errors(self):
        storage = SQLStorage("sqlite+aiosqlite://")
        try:
            with pytest.raises(StorageError) as exc_info:
                await storage.get("bank:admin")
            assert exc_info.value.operation == "get"

            with pytest.raises(StorageError):
                await storage.hset("bank:accounts", "a1", "doc-1")
        finally:
            await storage.close()


class TestUpstashStorage:
    async def test_client_errors_become_storage_errors(self):
        storage = UpstashStorage("https://example.upstash.io", "token", client=_FailingClient())
        with pytest.raises(StorageError) as exc_info:
            await storage.hget("bank:accounts", "a1")
        assert exc_info.value.operation == "hget"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_rejected_command_becomes_storage_error(self):
        storage = UpstashStorage("https://example.upstash.io", "token", client=_RejectingClient())
        with pytest.raises(StorageError) as exc_info:
            await storage.hset("bank:accounts", "a1", "doc-1")
        assert isinstance(exc_info.value.__cause__, UpstashError)

    async def test_ping_failure_on_initialize(self):
        storage = UpstashStorage("https://example.upstash.io", "token", client=_FailingClient())
        with pytest.raises(StorageError):
            await storage.initialize()

    async def test_bytes_are_decoded(self):
        storage = UpstashStorage("https://example.upstash.io", "token", client=_BytesClient())
        assert await storage.get("bank:admin") == "stored"
        assert await storage.hgetall("bank:accounts") == {"a1": "doc-1", "a2": "doc-2"}
