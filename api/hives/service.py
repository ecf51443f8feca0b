"""
Hive business logic (explicit create, read, rename, delete).

Lazy creation from logs/tasks lives in `hives.resolver`.
"""

from __future__ import annotations

import logging

from core import db
from core.errors import ConflictError, NotFoundError
from entries import repository as entry_repository
from entries.repository import EntryKind
from entries.schemas import EntryResponse

from . import repository, schemas

logger = logging.getLogger(__name__)


def _to_hive_response(row: dict) -> schemas.HiveResponse:
    return schemas.HiveResponse(
        id=int(row["id"]),
        hive_name=int(row["hive_name"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def create_hive(payload: schemas.CreateHiveRequest) -> schemas.HiveResponse:
    try:
        row = await repository.create_hive(payload.hive_name)
    except ConflictError as exc:
        raise ConflictError(f"Hive {payload.hive_name} already exists.") from exc
    logger.info("hive_created hive_name=%s id=%s source=explicit", row["hive_name"], row["id"])
    return _to_hive_response(row)


async def list_hives() -> list[schemas.HiveResponse]:
    rows = await repository.list_hives()
    return [_to_hive_response(row) for row in rows]


async def get_hive(hive_name: int) -> schemas.HiveDetailResponse:
    # One snapshot, so a concurrent delete or move cannot mix states.
    async with db.transaction(isolation="repeatable_read", readonly=True) as conn:
        row = await repository.get_hive(hive_name, conn=conn)
        if row is None:
            raise NotFoundError("Hive not found.")

        logs = await entry_repository.list_entries(EntryKind.LOG, hive_id=hive_name, conn=conn)
        tasks = await entry_repository.list_entries(EntryKind.TASK, hive_id=hive_name, conn=conn)

    return schemas.HiveDetailResponse(
        **_to_hive_response(row).model_dump(),
        logs=[EntryResponse.model_validate(log) for log in logs],
        tasks=[EntryResponse.model_validate(task) for task in tasks],
    )


async def rename_hive(hive_name: int, payload: schemas.RenameHiveRequest) -> schemas.HiveResponse:
    try:
        row = await repository.rename_hive(hive_name, new_hive_name=payload.hive_name)
    except ConflictError as exc:
        raise ConflictError(f"Hive {payload.hive_name} already exists.") from exc
    if row is None:
        raise NotFoundError("Hive not found.")
    logger.info("hive_renamed from=%s to=%s", hive_name, row["hive_name"])
    return _to_hive_response(row)


async def delete_hive(hive_name: int) -> None:
    row = await repository.delete_hive(hive_name)
    if row is None:
        raise NotFoundError("Hive not found.")
    logger.info("hive_deleted hive_name=%s id=%s", hive_name, row["id"])
