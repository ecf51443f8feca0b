"""
Log and task persistence (raw SQL).

Logs and tasks share one table shape, so every function takes an EntryKind
that picks the table. The kind set is closed; table names never come from
user input.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import asyncpg

from core import db
from core.errors import StorageFailure

ENTRY_COLUMNS = "id, hive_id, content, created_at, updated_at"


class EntryKind(str, Enum):
    LOG = "log"
    TASK = "task"

    @property
    def table(self) -> str:
        return "logs" if self is EntryKind.LOG else "tasks"


async def insert_entry(
    conn: asyncpg.Connection,
    kind: EntryKind,
    *,
    hive_id: int,
    content: str,
) -> dict[str, Any]:
    row = await db.conn_fetch_one(
        conn,
        f"""
        INSERT INTO {kind.table} (hive_id, content)
        VALUES ($1, $2)
        RETURNING {ENTRY_COLUMNS}
        """,
        hive_id,
        content,
    )
    if row is None:
        raise StorageFailure(f"Failed to insert {kind.value}.")
    return row


async def list_entries(
    kind: EntryKind,
    *,
    hive_id: int | None = None,
    conn: asyncpg.Connection | None = None,
) -> list[dict[str, Any]]:
    """
    List entries oldest first, optionally for one hive. Pass `conn` to read
    inside a transaction the caller holds.
    """
    args: list[Any] = []
    where = ""
    if hive_id is not None:
        where = "WHERE hive_id = $1"
        args.append(hive_id)
    sql = f"""
        SELECT {ENTRY_COLUMNS}
        FROM {kind.table}
        {where}
        ORDER BY created_at, id
        """
    if conn is not None:
        return await db.conn_fetch_all(conn, sql, *args)
    return await db.fetch_all(sql, *args)


async def get_entry(kind: EntryKind, entry_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {ENTRY_COLUMNS}
        FROM {kind.table}
        WHERE id = $1
        """,
        entry_id,
    )


async def get_last_entry(kind: EntryKind) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {ENTRY_COLUMNS}
        FROM {kind.table}
        ORDER BY created_at DESC, id DESC
        LIMIT 1
        """
    )


async def update_entry(
    kind: EntryKind,
    entry_id: int,
    *,
    content: str | None = None,
    hive_id: int | None = None,
) -> dict[str, Any] | None:
    """
    Patch content and/or hive reference. None leaves a column unchanged.
    Returns None when the entry does not exist.
    """
    return await db.fetch_one(
        f"""
        UPDATE {kind.table}
        SET content = COALESCE($2, content),
            hive_id = COALESCE($3, hive_id),
            updated_at = now()
        WHERE id = $1
        RETURNING {ENTRY_COLUMNS}
        """,
        entry_id,
        content,
        hive_id,
    )


async def delete_entry(kind: EntryKind, entry_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        DELETE FROM {kind.table}
        WHERE id = $1
        RETURNING id
        """,
        entry_id,
    )
