"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Every asyncpg error that leaves this module is translated into the
`core.errors` taxonomy by `storage_errors()`.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import settings
from .errors import ConflictError, InvalidRequestError, StorageFailure

_pool: asyncpg.Pool | None = None


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


@contextmanager
def storage_errors() -> Iterator[None]:
    """
    Translate asyncpg/driver exceptions raised inside the block.

    Unique and foreign key violations become ConflictError. Bad input values
    (an argument the driver cannot encode, e.g. an int4 overflow, or a
    server-side data exception) become InvalidRequestError. Everything else
    the engine or the driver can raise (deadlock, lock timeout, lost
    connection) becomes StorageFailure. Our own error types pass through
    untouched.
    """
    try:
        yield
    except asyncpg.exceptions.DataError as exc:
        # Argument encoding failures and SQLSTATE class 22 (data exception).
        raise InvalidRequestError(f"Invalid input value: {exc}") from exc
    except asyncpg.exceptions.UniqueViolationError as exc:
        constraint = getattr(exc, "constraint_name", None) or "unique constraint"
        raise ConflictError(f"Duplicate value violates {constraint}.") from exc
    except asyncpg.exceptions.ForeignKeyViolationError as exc:
        constraint = getattr(exc, "constraint_name", None) or "foreign key constraint"
        raise ConflictError(f"Referenced row is missing ({constraint}).") from exc
    except asyncpg.exceptions.PostgresError as exc:
        sqlstate = getattr(exc, "sqlstate", None) or "?"
        raise StorageFailure(f"Database error ({type(exc).__name__}, sqlstate={sqlstate}).") from exc
    except (asyncpg.exceptions.InterfaceError, OSError, asyncio.TimeoutError) as exc:
        raise StorageFailure(f"Database unavailable ({type(exc).__name__}).") from exc


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    with storage_errors():
        _pool = await asyncpg.create_pool(
            dsn=database_url(),
            min_size=settings.db_pool_min_size(),
            max_size=settings.db_pool_max_size(),
            command_timeout=settings.db_command_timeout_s(),
        )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


@asynccontextmanager
async def transaction(
    *,
    lock_timeout_ms: int | None = None,
    isolation: str | None = None,
    readonly: bool = False,
) -> AsyncIterator[asyncpg.Connection]:
    """
    Acquire a pooled connection and run the block in one transaction.

    The transaction commits when the block exits normally and rolls back on
    any exception, including task cancellation. `lock_timeout_ms` bounds how
    long statements in this transaction wait for row locks. `isolation` and
    `readonly` are passed to asyncpg (None keeps the server default,
    READ COMMITTED).
    """
    with storage_errors():
        async with pool().acquire() as conn:  # type: asyncpg.Connection
            async with conn.transaction(isolation=isolation, readonly=readonly):
                if lock_timeout_ms:
                    # set_config(..., true) is the parameterizable form of SET LOCAL.
                    await conn.execute(
                        "SELECT set_config('lock_timeout', $1, true)",
                        f"{int(lock_timeout_ms)}ms",
                    )
                yield conn


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    with storage_errors():
        row = await pool().fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    with storage_errors():
        rows = await pool().fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    with storage_errors():
        await pool().execute(sql, *args)


async def conn_fetch_one(conn: asyncpg.Connection, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Like `fetch_one`, but on a connection the caller already holds
    (i.e. inside the caller's transaction).
    """
    with storage_errors():
        row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def conn_fetch_all(conn: asyncpg.Connection, sql: str, *args: Any) -> list[dict[str, Any]]:
    with storage_errors():
        rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]
