"""Persistent key/value entry backing the artifact cache."""
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from faceblend.database import Base


class CacheEntry(Base):
    """One ``imageUrl_<day>`` or ``modelVersion_<day>`` entry."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"<CacheEntry(key={self.key}, value={self.value})>"
