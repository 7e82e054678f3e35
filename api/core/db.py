"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The FastAPI lifespan opens it on startup,
stores it on `app.state.db` and closes it on shutdown (see `api/main.py`).
Routes receive it through the `get_db` dependency and hand it to services and
repositories explicitly; nothing in the codebase reaches for a global pool.

Repositories accept anything implementing `Executor`: either the `Database`
itself (each statement on its own pooled connection) or a `Transaction`
yielded by `Database.transaction()`.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

import asyncpg
from fastapi import Request

from . import config

logger = logging.getLogger(__name__)

# Largest value a BIGINT (bigserial id) column can hold.
MAX_ID = 2**63 - 1


class Executor(Protocol):
    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        ...

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        ...

    async def execute(self, sql: str, *args: Any) -> str:
        ...


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def _init_connection(conn: asyncpg.Connection) -> None:
    # Decode json/jsonb columns (json_agg, json_build_object) into Python objects.
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class _QueryMethods:
    def _target(self) -> asyncpg.Pool | asyncpg.Connection:
        raise NotImplementedError

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self._target().fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self._target().fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). Returns the status tag,
        e.g. "DELETE 1".
        """
        return await self._target().execute(sql, *args)


class Transaction(_QueryMethods):
    def __init__(self, connection: asyncpg.Connection):
        self.connection = connection

    def _target(self) -> asyncpg.Connection:
        return self.connection


class Database(_QueryMethods):
    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 30.0,
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    @classmethod
    def from_env(cls) -> "Database":
        return cls(
            config.database_url(),
            min_size=config.db_pool_min_size(),
            max_size=config.db_pool_max_size(),
            command_timeout=config.db_command_timeout(),
        )

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        self._pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
            init=_init_connection,
        )
        logger.info("db_pool_opened min_size=%s max_size=%s", self.min_size, self.max_size)

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None
        logger.info("db_pool_closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    def _target(self) -> asyncpg.Pool:
        return self.pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        Yield a `Transaction` bound to one pooled connection. Commits on normal
        exit, rolls back when the block raises.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield Transaction(conn)


def get_db(request: Request) -> Database:
    """
    FastAPI dependency returning the process-wide `Database` opened at startup.
    """
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database is not attached to the application.")
    return db

