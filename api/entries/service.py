"""
Log and task business logic.

Creation goes through `creator.create_entry` (lazy hive creation in one
transaction). Reads, updates and deletes touch a single table and never
create hives.
"""

from __future__ import annotations

import logging

from core.errors import InvalidRequestError, NotFoundError
from hives import repository as hive_repository

from . import creator, repository, schemas
from .repository import EntryKind

logger = logging.getLogger(__name__)


def _label(kind: EntryKind) -> str:
    return kind.value.capitalize()


def _to_entry_response(row: dict) -> schemas.EntryResponse:
    return schemas.EntryResponse(
        id=int(row["id"]),
        hive_id=int(row["hive_id"]),
        content=str(row["content"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def create_log(payload: schemas.CreateEntryRequest) -> schemas.EntryResponse:
    row = await creator.create_entry(payload.hive_id, payload.content, EntryKind.LOG)
    return _to_entry_response(row)


async def create_task(payload: schemas.CreateEntryRequest) -> schemas.EntryResponse:
    row = await creator.create_entry(payload.hive_id, payload.content, EntryKind.TASK)
    return _to_entry_response(row)


async def list_entries(kind: EntryKind, *, hive_id: int | None = None) -> list[schemas.EntryResponse]:
    rows = await repository.list_entries(kind, hive_id=hive_id)
    return [_to_entry_response(row) for row in rows]


async def get_entry(kind: EntryKind, entry_id: int) -> schemas.EntryResponse:
    row = await repository.get_entry(kind, entry_id)
    if row is None:
        raise NotFoundError(f"{_label(kind)} not found.")
    return _to_entry_response(row)


async def last_entry(kind: EntryKind) -> schemas.EntryResponse:
    row = await repository.get_last_entry(kind)
    if row is None:
        raise NotFoundError(f"No {kind.table} found.")
    return _to_entry_response(row)


async def _update_entry(
    kind: EntryKind,
    entry_id: int,
    payload: schemas.UpdateEntryRequest,
) -> schemas.EntryResponse:
    if payload.content is None and payload.hive_id is None:
        raise InvalidRequestError("Provide content and/or hiveID to update.")

    # Moving an entry never creates a hive; the target must already exist.
    if payload.hive_id is not None and await hive_repository.get_hive(payload.hive_id) is None:
        raise NotFoundError("Hive not found.")

    row = await repository.update_entry(
        kind,
        entry_id,
        content=payload.content,
        hive_id=payload.hive_id,
    )
    if row is None:
        raise NotFoundError(f"{_label(kind)} not found.")
    return _to_entry_response(row)


async def update_log(log_id: int, payload: schemas.UpdateEntryRequest) -> schemas.EntryResponse:
    return await _update_entry(EntryKind.LOG, log_id, payload)


async def update_task(task_id: int, payload: schemas.UpdateEntryRequest) -> schemas.EntryResponse:
    return await _update_entry(EntryKind.TASK, task_id, payload)


async def delete_entry(kind: EntryKind, entry_id: int) -> None:
    row = await repository.delete_entry(kind, entry_id)
    if row is None:
        raise NotFoundError(f"{_label(kind)} not found.")
    logger.info("entry_deleted kind=%s id=%s", kind.value, entry_id)
