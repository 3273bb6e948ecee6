"""Pydantic schemas for bases."""

from datetime import datetime

from pydantic import BaseModel, Field

from basegrid.db.enums import BaseRole, BaseVisibility
from basegrid.schemas.user import UserSummary


class BaseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    visibility: BaseVisibility = BaseVisibility.PRIVATE
    workspace_id: int | None = Field(default=None, gt=0)


class BaseUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: str | None = Field(default=None, min_length=1, max_length=255)
    visibility: BaseVisibility | None = None


class BaseMove(BaseModel):
    workspace_id: int = Field(gt=0)


class BaseRead(BaseModel):
    id: int
    name: str
    visibility: BaseVisibility
    owner_id: int
    workspace_id: int | None
    is_trashed: bool
    trashed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BaseListItem(BaseRead):
    """Base as listed for an actor, with the actor's own membership role."""
    owner: UserSummary
    membership_role: BaseRole | None = None
