"""Pydantic schemas for tables."""

from datetime import datetime

from pydantic import BaseModel, Field


class TableCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class TableUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class ReorderRequest(BaseModel):
    """Complete ordering of active siblings, first to last."""
    ids: list[int]


class TableRead(BaseModel):
    id: int
    base_id: int
    name: str
    position: int
    is_trashed: bool
    trashed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
