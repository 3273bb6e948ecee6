"""User summaries embedded in other responses, and user administration."""

from datetime import datetime

from pydantic import BaseModel, Field

from basegrid.db.enums import PlatformRole


class UserSummary(BaseModel):
    id: int
    full_name: str
    email: str

    model_config = {"from_attributes": True}


class UserAdminRead(BaseModel):
    id: int
    email: str
    full_name: str
    platform_role: PlatformRole
    can_create_bases: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserAdminUpdate(BaseModel):
    """Unset fields are left alone."""
    full_name: str | None = Field(None, min_length=1, max_length=255)
    platform_role: PlatformRole | None = None
    is_active: bool | None = None
    can_create_bases: bool | None = None


class UserAdminListResponse(BaseModel):
    items: list[UserAdminRead]
    total: int
    page: int
    per_page: int
    pages: int
