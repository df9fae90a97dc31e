"""SQLAlchemy models."""
from faceblend.models.cache_entry import CacheEntry

__all__ = ["CacheEntry"]
