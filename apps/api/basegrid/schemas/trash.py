"""Pydantic schemas for trash listings and purges."""

from datetime import datetime

from pydantic import BaseModel

from basegrid.db.enums import TrashEntity


class TrashItem(BaseModel):
    entity: TrashEntity
    id: int
    name: str | None
    parent_id: int | None
    trashed_at: datetime


class TrashCountResponse(BaseModel):
    deleted: int


class TrashPurgeResponse(BaseModel):
    days: int
    deleted: dict[str, int]
