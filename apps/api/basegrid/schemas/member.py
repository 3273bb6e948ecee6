"""Pydantic schemas for base members."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from basegrid.db.enums import BaseRole
from basegrid.schemas.user import UserSummary


class MemberAdd(BaseModel):
    """Add a member by user id or by e-mail (one of them is required)."""
    user_id: int | None = Field(default=None, gt=0)
    email: str | None = Field(default=None, max_length=255)
    role: BaseRole

    @model_validator(mode="after")
    def require_user_reference(self) -> "MemberAdd":
        if self.user_id is None and not (self.email and self.email.strip()):
            raise ValueError("user_id or email is required")
        return self


class MemberUpdate(BaseModel):
    role: BaseRole


class MemberRead(BaseModel):
    id: int
    base_id: int
    user_id: int
    role: BaseRole
    created_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}
