"""Pydantic schemas for the audit log.

The stored client IP is deliberately absent from every response model.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from basegrid.schemas.user import UserSummary


class AuditEventRead(BaseModel):
    id: int
    created_at: datetime
    action: str
    summary: str
    details: dict[str, Any] | None
    base_id: int
    table_id: int | None
    record_id: int | None
    field_id: int | None
    user_id: int | None
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


class AuditListResponse(BaseModel):
    items: list[AuditEventRead]
    total: int
    page: int
    per_page: int
    pages: int
