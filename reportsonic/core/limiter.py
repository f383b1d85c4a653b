"""
reportsonic/core/limiter.py

Rate Limiter Configuration

Initializes the SlowAPI rate limiter keyed on the client's remote address.
Can be switched off through RATE_LIMIT_ENABLED.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from reportsonic.core.config import settings

# ---------------------------------------------------
# Rate Limiter Initialization
# ---------------------------------------------------
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
