"""
Rate limiter infrastructure using slowapi.
"""

from slowapi import Limiter, _rate_limit_exceeded_handler  # noqa: F401
from slowapi.util import get_remote_address

from gatekit_core.config import settings

# Limits per route
KEY_CREATE_LIMIT = "5/minute"
KEY_ROLL_LIMIT = "3/minute"
AUTH_LIMIT = "5/minute"

# Initialize the global limiter
# Memory storage is per-process; point RATE_LIMIT_STORAGE_URI at Redis when running several workers
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)
