"""Shared slowapi rate limiter.

Disabled when ENVIRONMENT=test so API tests are never throttled.
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

# One user scanning a few hundred codes; lookups are cheap thanks to the bar cache
LOOKUP_RATE_LIMIT = "120/minute"
SCAN_RATE_LIMIT = "10/minute"

if os.getenv("ENVIRONMENT") == "test":
    limiter = Limiter(key_func=get_remote_address, enabled=False)
else:
    limiter = Limiter(key_func=get_remote_address)
