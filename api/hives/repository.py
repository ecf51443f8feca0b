"""
Hive persistence (raw SQL).

Functions taking `conn` run inside a transaction the caller already holds;
the rest go through the shared pool.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db
from core.errors import StorageFailure

HIVE_COLUMNS = "id, hive_name, created_at, updated_at"


async def get_hive_for_update(conn: asyncpg.Connection, hive_name: int) -> dict[str, Any] | None:
    """
    Read a hive and hold its row lock until the caller's transaction ends.
    """
    return await db.conn_fetch_one(
        conn,
        f"""
        SELECT {HIVE_COLUMNS}
        FROM hives
        WHERE hive_name = $1
        FOR UPDATE
        """,
        hive_name,
    )


async def insert_hive(conn: asyncpg.Connection, hive_name: int) -> dict[str, Any]:
    """
    Insert a hive inside a savepoint of the caller's transaction.

    A unique violation rolls back the savepoint only, so the outer
    transaction stays usable, and surfaces as ConflictError.
    """
    with db.storage_errors():
        async with conn.transaction():
            row = await db.conn_fetch_one(
                conn,
                f"""
                INSERT INTO hives (hive_name)
                VALUES ($1)
                RETURNING {HIVE_COLUMNS}
                """,
                hive_name,
            )
    if row is None:
        raise StorageFailure("Failed to insert hive.")
    return row


async def create_hive(hive_name: int) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO hives (hive_name)
        VALUES ($1)
        RETURNING {HIVE_COLUMNS}
        """,
        hive_name,
    )
    if row is None:
        raise StorageFailure("Failed to create hive.")
    return row


async def list_hives() -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {HIVE_COLUMNS}
        FROM hives
        ORDER BY hive_name
        """
    )


async def get_hive(hive_name: int, *, conn: asyncpg.Connection | None = None) -> dict[str, Any] | None:
    sql = f"""
        SELECT {HIVE_COLUMNS}
        FROM hives
        WHERE hive_name = $1
        """
    if conn is not None:
        return await db.conn_fetch_one(conn, sql, hive_name)
    return await db.fetch_one(sql, hive_name)


async def rename_hive(hive_name: int, *, new_hive_name: int) -> dict[str, Any] | None:
    """
    Change a hive's business key. Logs and tasks follow via ON UPDATE CASCADE.
    Returns None when no hive has `hive_name`.
    """
    return await db.fetch_one(
        f"""
        UPDATE hives
        SET hive_name = $2,
            updated_at = now()
        WHERE hive_name = $1
        RETURNING {HIVE_COLUMNS}
        """,
        hive_name,
        new_hive_name,
    )


async def delete_hive(hive_name: int) -> dict[str, Any] | None:
    """
    Delete a hive; its logs and tasks go with it (ON DELETE CASCADE).
    """
    return await db.fetch_one(
        """
        DELETE FROM hives
        WHERE hive_name = $1
        RETURNING id, hive_name
        """,
        hive_name,
    )
