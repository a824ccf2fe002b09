"""
Authentication Package
Password and SSO login, source-IP lockout and session tokens.
"""

from portal.auth.rate_limiter import (
    InMemoryRateLimitStore,
    LoginRateLimiter,
    RateLimitStore,
    RedisRateLimitStore,
    build_rate_limiter,
)
from portal.auth.utils import (
    create_access_token,
    decode_token,
    hash_password,
    normalize_email,
    verify_password,
)

__all__ = [
    # Lockout
    "InMemoryRateLimitStore",
    "LoginRateLimiter",
    "RateLimitStore",
    "RedisRateLimitStore",
    "build_rate_limiter",
    # Utils
    "create_access_token",
    "decode_token",
    "hash_password",
    "normalize_email",
    "verify_password",
]
