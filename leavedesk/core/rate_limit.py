"""
Shared slowapi limiter, keyed by client IP.

Lives outside the routers so ``main`` can register it on ``app.state``
and tests can switch it off through ``RATE_LIMIT_ENABLED``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from leavedesk.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
