"""Pydantic schemas for records and cells.

Cell values travel as JSON keyed by field id (as a string, JSON object keys).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from basegrid.schemas.field import FieldRead


class RecordCreate(BaseModel):
    values: dict[str, Any] = {}


class RecordPatch(BaseModel):
    values: dict[str, Any]


class CellWrite(BaseModel):
    """Raw value for one cell; null clears it."""
    value: Any = None


class CellRead(BaseModel):
    record_id: int
    field_id: int
    value: Any


class RecordRead(BaseModel):
    id: int
    table_id: int
    created_by_id: int | None
    updated_by_id: int | None
    created_at: datetime
    updated_at: datetime
    values: dict[str, Any]


class RecordListResponse(BaseModel):
    fields: list[FieldRead]
    items: list[RecordRead]
    total: int
    page: int
    per_page: int
    pages: int
