"""Rate limiting configuration for the API."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from basegrid.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
