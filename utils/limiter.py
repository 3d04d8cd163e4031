"""Shared slowapi rate limiter (in-memory storage, keyed by client address)."""
from slowapi import Limiter
from slowapi.util import get_remote_address

import config

limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)
DEFAULT_RATE_LIMIT = config.RATE_LIMIT
