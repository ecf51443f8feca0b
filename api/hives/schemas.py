"""
Hive API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.schema import INT4_MAX, INT4_MIN
from entries.schemas import EntryResponse


class CreateHiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hive_name: int = Field(..., alias="hiveName", ge=INT4_MIN, le=INT4_MAX)


class RenameHiveRequest(CreateHiveRequest):
    """
    Alias schema: a rename carries the new hive name, shaped like a create.
    """


class HiveResponse(BaseModel):
    id: int
    hive_name: int
    created_at: datetime
    updated_at: datetime


class HiveDetailResponse(HiveResponse):
    logs: list[EntryResponse] = Field(default_factory=list)
    tasks: list[EntryResponse] = Field(default_factory=list)
