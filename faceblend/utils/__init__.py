"""Utilities module - lock client and day helpers."""
from faceblend.config import get_settings
from faceblend.utils.lock_client import LockClient, LockTimeoutError
from faceblend.utils.datetime_helpers import day_key, ensure_utc, parse_day_key

settings = get_settings()

# Create singleton instances
lock_client = LockClient(settings.redis_url if settings.redis_url else None)

__all__ = ["lock_client", "LockClient", "LockTimeoutError", "day_key", "ensure_utc", "parse_day_key"]
