"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external cron (GitHub Actions, Render cron jobs, ...).
"""

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from basegrid.core.config import settings
from basegrid.core.deps import get_direct_db
from basegrid.core.rate_limit import limiter
from basegrid.jobs.trash_purge import run_trash_purge
from basegrid.schemas.trash import TrashPurgeResponse

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if not hmac.compare_digest(x_internal_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post(
    "/trash-purge",
    response_model=TrashPurgeResponse,
    dependencies=[Depends(verify_internal_secret)],
)
@limiter.limit(settings.RATE_LIMIT_INTERNAL)
def purge_trash(
    request: Request,
    days: int | None = Query(None, ge=0, description="Defaults to TRASH_RETENTION_DAYS"),
    db: Session = Depends(get_direct_db),
):
    """
    Daily sweep: hard delete items trashed at least ``days`` ago.

    Runs descendants first (comments, options, records, fields, tables,
    bases, workspaces) in one transaction.
    """
    result = run_trash_purge(db, days, request_id=request.headers.get("X-Request-ID"))
    return TrashPurgeResponse(**result)
