"""Scheduled trash purge.

Hard deletes everything that has sat in the trash for at least the retention
period. Called by the ``purge-trash`` CLI command and by the internal cron
endpoint.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from basegrid.core.config import settings
from basegrid.core.structured_logging import build_log_context
from basegrid.services import trash_service

logger = logging.getLogger(__name__)


def run_trash_purge(
    db: Session,
    days: int | None = None,
    *,
    now: datetime | None = None,
    request_id: str | None = None,
) -> dict:
    """Purge all entity types; returns {"days": ..., "deleted": {entity: count}}."""
    if days is None:
        days = settings.TRASH_RETENTION_DAYS
    context = build_log_context(request_id=request_id, route="trash-purge")

    logger.info("Trash purge started", extra={**context, "days": days})
    counts = trash_service.purge_all_older_than(db, days, now=now)
    for entity, count in counts.items():
        if count:
            logger.info("Purged trashed rows", extra={**context, "entity": entity, "count": count})
    logger.info(
        "Trash purge finished",
        extra={**context, "days": days, "total": sum(counts.values())},
    )
    return {"days": days, "deleted": counts}
