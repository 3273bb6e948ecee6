"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel

from basegrid.core.permissions import PlatformContext
from basegrid.db.enums import PlatformRole


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: int  # user_id
    token_version: int


class UserSession(BaseModel):
    """
    Authenticated actor for a request.

    Returned by the get_current_session dependency and carries everything
    the permission resolver needs besides base-specific data.
    """
    user_id: int
    email: str
    full_name: str
    platform_role: PlatformRole
    can_create_bases: bool = False

    @property
    def is_sysadmin(self) -> bool:
        return self.platform_role == PlatformRole.SYSADMIN

    def platform_context(self) -> PlatformContext:
        return PlatformContext(
            user_id=self.user_id,
            platform_role=self.platform_role,
            can_create_bases=self.can_create_bases,
        )


class MeResponse(BaseModel):
    """Response schema for GET /me."""
    user_id: int
    email: str
    full_name: str
    platform_role: PlatformRole
    can_create_bases: bool
