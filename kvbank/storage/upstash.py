"""
Upstash Redis storage adapter (Redis over HTTPS REST).

Upstash exposes the Redis command set over a REST endpoint, which makes it
usable from serverless hosts where a persistent TCP connection to Redis is
not available. The async client from `upstash_redis.asyncio` is used so
storage calls never block the event loop.

Error translation:
  The REST client can fail with UpstashError (command rejected by the
  server) or with transport errors from the underlying HTTP client. Both are
  wrapped in StorageError with the original exception chained, so callers
  only ever handle one failure type.
"""

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx
from upstash_redis.asyncio import Redis
from upstash_redis.errors import UpstashError

from kvbank.exceptions import StorageError
from kvbank.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstashStorage(StorageAdapter):
    """Storage adapter backed by an Upstash Redis database."""

    def __init__(self, url: str, token: str, client: Redis | None = None) -> None:
        self._client = client or Redis(url=url, token=token)

    async def _run(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except (UpstashError, httpx.HTTPError) as exc:
            logger.error("Upstash %s failed: %s", operation, exc)
            raise StorageError(f"Redis {operation} failed", operation=operation) from exc

    async def initialize(self) -> None:
        await self._run("ping", self._client.ping())

    async def close(self) -> None:
        await self._client.close()

    async def get(self, key: str) -> str | None:
        return _as_text(await self._run("get", self._client.get(key)))

    async def set(self, key: str, value: str) -> None:
        await self._run("set", self._client.set(key, value))

    async def hget(self, key: str, field: str) -> str | None:
        return _as_text(await self._run("hget", self._client.hget(key, field)))

    async def hset(self, key: str, field: str, value: str) -> None:
        await self._run("hset", self._client.hset(key, field=field, value=value))

    async def hgetall(self, key: str) -> dict[str, str]:
        data = await self._run("hgetall", self._client.hgetall(key))
        if not data:
            return {}
        if isinstance(data, list):
            # Some client versions return alternating field/value lists
            it = iter(data)
            data = {k: v for k, v in zip(it, it)}
        return {_as_text(k): _as_text(v) for k, v in data.items()}

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return int(await self._run("hincrby", self._client.hincrby(key, field, amount)))

    async def lpush(self, key: str, value: str) -> int:
        return int(await self._run("lpush", self._client.lpush(key, value)))

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        await self._run("ltrim", self._client.ltrim(key, start, stop))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = await self._run("lrange", self._client.lrange(key, start, stop))
        return [_as_text(item) for item in items or []]


def _as_text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode()
    return value
