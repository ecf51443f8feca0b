"""
Log and task API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from core.schema import INT4_MAX, INT4_MIN

from . import schemas, service
from .repository import EntryKind

logs_router = APIRouter(prefix="/logs")
tasks_router = APIRouter(prefix="/tasks")


# --- logs ---


@logs_router.post("", status_code=status.HTTP_201_CREATED)
async def create_log(request: schemas.CreateEntryRequest) -> schemas.EntryResponse:
    """
    Create a log. The hive is created on first use if it does not exist.
    """
    return await service.create_log(request)


@logs_router.get("")
async def list_logs(
    hive_id: int | None = Query(default=None, ge=INT4_MIN, le=INT4_MAX),
) -> list[schemas.EntryResponse]:
    return await service.list_entries(EntryKind.LOG, hive_id=hive_id)


@logs_router.get("/last")
async def get_last_log() -> schemas.EntryResponse:
    return await service.last_entry(EntryKind.LOG)


@logs_router.get("/{log_id}")
async def get_log(log_id: int) -> schemas.EntryResponse:
    return await service.get_entry(EntryKind.LOG, log_id)


@logs_router.api_route("/{log_id}", methods=["PATCH", "PUT"])
async def update_log(log_id: int, request: schemas.UpdateEntryRequest) -> schemas.EntryResponse:
    return await service.update_log(log_id, request)


@logs_router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_log(log_id: int) -> Response:
    await service.delete_entry(EntryKind.LOG, log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- tasks ---


@tasks_router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(request: schemas.CreateEntryRequest) -> schemas.EntryResponse:
    """
    Create a task. The hive is created on first use if it does not exist.
    """
    return await service.create_task(request)


@tasks_router.get("")
async def list_tasks(
    hive_id: int | None = Query(default=None, ge=INT4_MIN, le=INT4_MAX),
) -> list[schemas.EntryResponse]:
    return await service.list_entries(EntryKind.TASK, hive_id=hive_id)


@tasks_router.get("/last")
async def get_last_task() -> schemas.EntryResponse:
    return await service.last_entry(EntryKind.TASK)


@tasks_router.get("/{task_id}")
async def get_task(task_id: int) -> schemas.EntryResponse:
    return await service.get_entry(EntryKind.TASK, task_id)


@tasks_router.api_route("/{task_id}", methods=["PATCH", "PUT"])
async def update_task(task_id: int, request: schemas.UpdateEntryRequest) -> schemas.EntryResponse:
    return await service.update_task(task_id, request)


@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int) -> Response:
    await service.delete_entry(EntryKind.TASK, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
