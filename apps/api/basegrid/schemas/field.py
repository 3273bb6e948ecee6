"""Pydantic schemas for fields and select options."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from basegrid.db.enums import FieldType


# =============================================================================
# Options
# =============================================================================

class OptionInput(BaseModel):
    label: str = Field(min_length=1, max_length=255)
    color: str | None = Field(default=None, max_length=32)


class OptionUpdate(BaseModel):
    label: str | None = Field(default=None, min_length=1, max_length=255)
    color: str | None = Field(default=None, max_length=32)


class OptionRead(BaseModel):
    id: int
    field_id: int
    label: str
    color: str | None
    position: int
    is_trashed: bool
    trashed_at: datetime | None

    model_config = {"from_attributes": True}


# =============================================================================
# Fields
# =============================================================================

class FieldCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: FieldType
    config: dict[str, Any] | None = None
    options: list[OptionInput] | None = Field(
        default=None,
        description="Initial options (select types only)",
    )


class FieldUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    config: dict[str, Any] | None = None


class FieldTypeChange(BaseModel):
    type: FieldType
    options: list[OptionInput] | None = Field(
        default=None,
        description="Required when switching into a select type",
    )


class FieldRead(BaseModel):
    id: int
    table_id: int
    name: str
    type: FieldType
    position: int
    config: dict[str, Any] | None
    is_trashed: bool
    trashed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
