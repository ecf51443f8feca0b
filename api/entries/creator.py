"""
Transactional entry creation.

Flow (one transaction):
1) Resolve the hive by name, creating it if needed (hives.resolver)
2) Insert the log or task row referencing it
3) Commit

Any failure rolls the whole transaction back, so a hive created in step 1
never outlives a failed step 2.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from core import db, settings
from core.errors import ConflictError
from hives import resolver

from . import repository
from .repository import EntryKind

logger = logging.getLogger(__name__)


class CreationState(str, Enum):
    STARTED = "started"
    HIVE_RESOLVED = "hive_resolved"
    ENTRY_INSERTED = "entry_inserted"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


async def create_entry(hive_name: int, content: str, kind: EntryKind) -> dict[str, Any]:
    """
    Create a log or task for `hive_name`, creating the hive on first use.

    Input is assumed validated (non-empty content). A ConflictError from the
    resolver is retried once in the same transaction; a second one, and any
    StorageFailure, rolls back and propagates.
    """
    state = CreationState.STARTED
    try:
        async with db.transaction(lock_timeout_ms=settings.db_lock_timeout_ms()) as conn:
            try:
                await resolver.resolve_or_create(hive_name, conn)
            except ConflictError:
                # The competing transaction has committed its hive by now.
                await resolver.resolve_or_create(hive_name, conn)
            state = CreationState.HIVE_RESOLVED

            entry = await repository.insert_entry(conn, kind, hive_id=hive_name, content=content)
            state = CreationState.ENTRY_INSERTED
    except BaseException:
        logger.warning(
            "entry_create_failed kind=%s hive_name=%s state=%s reached=%s",
            kind.value,
            hive_name,
            CreationState.ROLLED_BACK.value,
            state.value,
        )
        raise

    state = CreationState.COMMITTED
    logger.info(
        "entry_created kind=%s hive_name=%s id=%s state=%s",
        kind.value,
        hive_name,
        entry["id"],
        state.value,
    )
    return entry
