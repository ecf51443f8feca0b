"""
Log/task API schemas (request/response models).

Request field names follow the existing clients (`hiveID`); responses use
snake_case column names.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.schema import INT4_MAX, INT4_MIN


class CreateEntryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1)
    hive_id: int = Field(..., alias="hiveID", ge=INT4_MIN, le=INT4_MAX)


class UpdateEntryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Omitted fields are left unchanged.
    content: str | None = Field(default=None, min_length=1)
    hive_id: int | None = Field(default=None, alias="hiveID", ge=INT4_MIN, le=INT4_MAX)


class EntryResponse(BaseModel):
    id: int
    hive_id: int
    content: str
    created_at: datetime
    updated_at: datetime
