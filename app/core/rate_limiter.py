"""
slowapi limiter keyed on the client IP.
Rate-limited handlers take `request: Request`, and @limiter.limit sits below
the @router decorator.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
    default_limits=["200/minute"],
)
