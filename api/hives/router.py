"""
Hive API endpoints. Hives are addressed by `hive_name`, not by row id.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Response, status

from core.schema import INT4_MAX, INT4_MIN

from . import schemas, service

router = APIRouter(prefix="/hives")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_hive(request: schemas.CreateHiveRequest) -> schemas.HiveResponse:
    return await service.create_hive(request)


@router.get("")
async def list_hives() -> list[schemas.HiveResponse]:
    return await service.list_hives()


@router.get("/{hive_name}")
async def get_hive(hive_name: int = Path(ge=INT4_MIN, le=INT4_MAX)) -> schemas.HiveDetailResponse:
    """
    Return the hive together with its logs and tasks.
    """
    return await service.get_hive(hive_name)


@router.patch("/{hive_name}")
async def rename_hive(
    request: schemas.RenameHiveRequest,
    hive_name: int = Path(ge=INT4_MIN, le=INT4_MAX),
) -> schemas.HiveResponse:
    return await service.rename_hive(hive_name, request)


@router.delete("/{hive_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hive(hive_name: int = Path(ge=INT4_MIN, le=INT4_MAX)) -> Response:
    await service.delete_hive(hive_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
