"""
Rate limiter configuration.
Uses slowapi for IP-based limits on login and AI endpoints.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from siteadmin.config import settings

# Rate limiter (uses client IP); limits are per route
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
