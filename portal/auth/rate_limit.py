"""
Rate Limiting Utilities
Coarse per-IP request limit for authentication endpoints.

This sits in front of the lockout counter in ``rate_limiter``: it caps raw
request volume, the lockout counter caps failed credentials.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from portal.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.redis_url if settings.rate_limit_backend == "redis" else "memory://",
)
