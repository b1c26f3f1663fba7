"""
Relational storage adapter: the key-value layout on top of SQLAlchemy.

This is the relational-database alternative to Redis. It keeps the exact
same key layout (see kvbank.storage.base) but persists it in three tables:

  - kv_values:        scalar documents (key -> value)
  - kv_hash_entries:  hash fields (key, field -> value), insertion ordered
  - kv_list_items:    list elements; the highest id is the list head

Architecture note:
  We use async SQLAlchemy (with aiosqlite for SQLite) so the API can serve
  concurrent requests without blocking. When migrating to PostgreSQL, only
  DATABASE_URL needs to change (to use the asyncpg driver).

Session lifecycle:
  Every primitive opens its own session and transaction. A primitive
  therefore commits as a unit, which is exactly the atomicity Redis gives a
  single command. Account documents are written with one hset, so a
  movement and its balance update always land together.
"""

import logging
import os

from sqlalchemy import Integer, String, Text, UniqueConstraint, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kvbank.exceptions import StorageError
from kvbank.storage.base import StorageAdapter, slice_bounds

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the key-value tables."""
    pass


class ScalarValue(Base):
    __tablename__ = "kv_values"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class HashEntry(Base):
    __tablename__ = "kv_hash_entries"

    __table_args__ = (
        UniqueConstraint("key", "field", name="uq_kv_hash_entries_key_field"),
    )

    # Autoincrement id doubles as insertion order for hgetall
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    field: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class ListItem(Base):
    __tablename__ = "kv_list_items"

    # Newest element has the highest id (lpush semantics)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class SQLStorage(StorageAdapter):
    """Storage adapter persisting the key-value layout in relational tables."""

    def __init__(self, database_url: str, echo: bool = False, engine: AsyncEngine | None = None) -> None:
        self._engine = engine or create_async_engine(database_url, echo=echo)
        # expire_on_commit=False prevents lazy-load errors after commit;
        # attribute access on a committed row would otherwise trigger a
        # synchronous reload, which fails in async context.
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def initialize(self) -> None:
        """Create the tables if they don't exist (use migrations in production)."""
        database = self._engine.url.database
        if self._engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(database)), exist_ok=True)
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError("Could not initialize SQL storage", operation="initialize") from exc

    async def close(self) -> None:
        await self._engine.dispose()

    def _fail(self, operation: str, exc: SQLAlchemyError) -> StorageError:
        logger.error("SQL %s failed: %s", operation, exc)
        return StorageError(f"SQL {operation} failed", operation=operation)

    # --- Scalars -----------------------------------------------------------

    async def get(self, key: str) -> str | None:
        try:
            async with self._sessionmaker() as session:
                row = await session.get(ScalarValue, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            raise self._fail("get", exc) from exc

    async def set(self, key: str, value: str) -> None:
        try:
            async with self._sessionmaker() as session, session.begin():
                await session.merge(ScalarValue(key=key, value=value))
        except SQLAlchemyError as exc:
            raise self._fail("set", exc) from exc

    # --- Hashes ------------------------------------------------------------

    async def hget(self, key: str, field: str) -> str | None:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(HashEntry.value)
                    .where(HashEntry.key == key)
                    .where(HashEntry.field == field)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail("hget", exc) from exc

    async def hset(self, key: str, field: str, value: str) -> None:
        try:
            async with self._sessionmaker() as session, session.begin():
                entry = await self._locked_entry(session, key, field)
                if entry is None:
                    session.add(HashEntry(key=key, field=field, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as exc:
            raise self._fail("hset", exc) from exc

    async def hgetall(self, key: str) -> dict[str, str]:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(HashEntry.field, HashEntry.value)
                    .where(HashEntry.key == key)
                    .order_by(HashEntry.id)
                )
                return {field: value for field, value in result.all()}
        except SQLAlchemyError as exc:
            raise self._fail("hgetall", exc) from exc

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        try:
            async with self._sessionmaker() as session, session.begin():
                entry = await self._locked_entry(session, key, field)
                if entry is None:
                    session.add(HashEntry(key=key, field=field, value=str(amount)))
                    return amount
                new_value = int(entry.value) + amount
                entry.value = str(new_value)
                return new_value
        except SQLAlchemyError as exc:
            raise self._fail("hincrby", exc) from exc

    async def _locked_entry(self, session: AsyncSession, key: str, field: str) -> HashEntry | None:
        result = await session.execute(
            select(HashEntry)
            .where(HashEntry.key == key)
            .where(HashEntry.field == field)
            .with_for_update()  # No-op on SQLite, locks the row on PostgreSQL
        )
        return result.scalar_one_or_none()

    # --- Lists -------------------------------------------------------------

    async def lpush(self, key: str, value: str) -> int:
        try:
            async with self._sessionmaker() as session, session.begin():
                session.add(ListItem(key=key, value=value))
                await session.flush()
                result = await session.execute(
                    select(func.count()).select_from(ListItem).where(ListItem.key == key)
                )
                return result.scalar_one()
        except SQLAlchemyError as exc:
            raise self._fail("lpush", exc) from exc

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        try:
            async with self._sessionmaker() as session, session.begin():
                result = await session.execute(
                    select(ListItem.id).where(ListItem.key == key).order_by(ListItem.id.desc())
                )
                ids = list(result.scalars().all())
                begin, end = slice_bounds(len(ids), start, stop)
                keep = set(ids[begin:end])
                drop = [item_id for item_id in ids if item_id not in keep]
                if drop:
                    await session.execute(delete(ListItem).where(ListItem.id.in_(drop)))
        except SQLAlchemyError as exc:
            raise self._fail("ltrim", exc) from exc

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(ListItem.value).where(ListItem.key == key).order_by(ListItem.id.desc())
                )
                values = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise self._fail("lrange", exc) from exc
        begin, end = slice_bounds(len(values), start, stop)
        return values[begin:end]
