"""
Async database adapters (raw SQL).

Two engines sit behind the same three primitives:
- `PostgresDatabase`: asyncpg connection pool
- `SQLiteDatabase`: single aiosqlite connection to a local file

SQL parameter style:
- callers always write positional `?` placeholders
- the Postgres adapter rewrites them to asyncpg's $1, $2, $3, ...

Rows come back as plain dicts keyed by column name. Any driver failure is
raised as `StorageError` with the driver exception chained.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import ssl
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import aiosqlite
import asyncpg

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\?")
_ROW_COUNT = re.compile(r"(\d+)\s*$")


# Storage failures are explicit and separable from other runtime errors.
class StorageError(RuntimeError):
    pass


class Database(Protocol):
    name: str

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def execute(self, sql: str, *args: Any) -> int: ...

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]: ...

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None: ...


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def to_asyncpg_placeholders(sql: str) -> str:
    """
    Rewrite `?` placeholders to `$1..$n` in order of appearance.
    """
    counter = iter(range(1, sql.count("?") + 1))
    return _PLACEHOLDER.sub(lambda _: f"${next(counter)}", sql)


def _parse_row_count(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 1" or "INSERT 0 1".
    match = _ROW_COUNT.search(status or "")
    return int(match.group(1)) if match else 0


def _insecure_ssl_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


class PostgresDatabase:
    name = "postgres"

    def __init__(self, url: str, *, production: bool = False) -> None:
        url = (url or "").strip()
        if not url:
            raise StorageError("DATABASE_URL is not set.")
        self._dsn = _sanitize_database_url(url)
        self._production = production
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=1,
                max_size=5,
                command_timeout=30,
                ssl=_insecure_ssl_context() if self._production else None,
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
            raise StorageError(f"Failed to connect to PostgreSQL: {exc}") from exc
        logger.info("postgres_connected production=%s", self._production)

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StorageError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def execute(self, sql: str, *args: Any) -> int:
        try:
            status = await self.pool().execute(to_asyncpg_placeholders(sql), *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StorageError(str(exc)) from exc
        return _parse_row_count(status)

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        try:
            rows = await self.pool().fetch(to_asyncpg_placeholders(sql), *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StorageError(str(exc)) from exc
        return [dict(r) for r in rows]

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        try:
            row = await self.pool().fetchrow(to_asyncpg_placeholders(sql), *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StorageError(str(exc)) from exc
        return dict(row) if row is not None else None


class SQLiteDatabase:
    """
    Embedded single-file engine.

    One connection is held for the process lifetime; aiosqlite runs it on
    its own thread so the event loop never blocks on file I/O. Every write
    is committed immediately.
    """

    name = "sqlite"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        if self._conn is not None:
            return None
        try:
            conn = await aiosqlite.connect(self.path)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to open SQLite database at {self.path}: {exc}") from exc
        conn.row_factory = aiosqlite.Row
        self._conn = conn
        logger.info("sqlite_connected path=%s", self.path)

    async def close(self) -> None:
        if self._conn is None:
            return None
        await self._conn.close()
        self._conn = None

    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("SQLite connection is not open. Call connect() on startup.")
        return self._conn

    async def execute(self, sql: str, *args: Any) -> int:
        conn = self.conn()
        try:
            cursor = await conn.execute(sql, args)
            await conn.commit()
        except (sqlite3.Error, OverflowError, ValueError) as exc:
            raise StorageError(str(exc)) from exc
        changes = cursor.rowcount
        await cursor.close()
        return max(changes, 0)

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        try:
            async with self.conn().execute(sql, args) as cursor:
                rows = await cursor.fetchall()
        except (sqlite3.Error, OverflowError, ValueError) as exc:
            raise StorageError(str(exc)) from exc
        return [dict(r) for r in rows]

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        try:
            async with self.conn().execute(sql, args) as cursor:
                row = await cursor.fetchone()
        except (sqlite3.Error, OverflowError, ValueError) as exc:
            raise StorageError(str(exc)) from exc
        return dict(row) if row is not None else None
