"""
Hive resolution: find a hive by name or create it on demand.

The resolver always runs inside a transaction opened by its caller and never
commits or rolls it back.

Locking:
- An existing hive is read with FOR UPDATE, so concurrent resolvers for the
  same name queue behind the first transaction instead of racing.
- Postgres has no row to lock for a name that does not exist yet. Two
  transactions can both miss and both insert; the second insert waits on the
  unique index and fails once the first commits. That loser gets
  ConflictError with its savepoint already rolled back, and a fresh call in
  the same transaction will find the committed row.
- Engines that only serialize writers (no row locks) still keep the
  one-hive-per-name invariant through the unique constraint; they just
  block earlier.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from core.errors import ConflictError

from . import repository

logger = logging.getLogger(__name__)


async def resolve_or_create(hive_name: int, conn: asyncpg.Connection) -> dict[str, Any]:
    hive = await repository.get_hive_for_update(conn, hive_name)
    if hive is not None:
        return hive

    try:
        hive = await repository.insert_hive(conn, hive_name)
    except ConflictError:
        logger.info("hive_create_conflict hive_name=%s", hive_name)
        raise

    logger.info("hive_created hive_name=%s id=%s", hive_name, hive["id"])
    return hive
