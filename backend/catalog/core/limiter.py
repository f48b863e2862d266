"""Rate limiter for upload endpoints. Import from here to avoid circular deps."""
from slowapi import Limiter
from slowapi.util import get_remote_address

from catalog.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
