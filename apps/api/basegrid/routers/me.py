"""Current actor endpoint."""

from fastapi import APIRouter, Depends

from basegrid.core.deps import get_current_session
from basegrid.schemas.auth import MeResponse, UserSession

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=MeResponse)
def get_me(session: UserSession = Depends(get_current_session)) -> MeResponse:
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        full_name=session.full_name,
        platform_role=session.platform_role,
        can_create_bases=session.can_create_bases,
    )
