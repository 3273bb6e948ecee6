"""Pydantic schemas for record comments."""

from datetime import datetime

from pydantic import BaseModel, Field

from basegrid.schemas.user import UserSummary


class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=5000)


class CommentUpdate(BaseModel):
    body: str = Field(min_length=1, max_length=5000)


class CommentRead(BaseModel):
    id: int
    record_id: int
    body: str
    created_by_id: int | None
    author: UserSummary | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
