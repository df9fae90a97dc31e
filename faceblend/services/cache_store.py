"""Keyed string stores backing the artifact cache and saved game state.

Both backends expose the same two operations: ``get`` and ``set`` on a flat
key -> string mapping. A missing or corrupt store reads as empty.
"""
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from faceblend.config import Settings
from faceblend.models.cache_entry import CacheEntry
from faceblend.utils.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Flat key -> string store."""

    backend: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for ``key`` or None.

        Raises:
            CacheUnavailableError: If the store cannot be read
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``; rewriting an identical value is a no-op.

        Raises:
            CacheUnavailableError: If the store cannot be written
        """


class JsonFileStore(KeyValueStore):
    """Store kept as one JSON object on disk.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write never leaves a truncated cache behind.
    """

    backend = "file"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"Cache file {self.path} not found. A new one will be created.")
            return {}
        except OSError as exc:
            raise CacheUnavailableError(f"Cannot read cache file {self.path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning(f"Cache file {self.path} is corrupt ({exc}); treating it as empty")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Cache file {self.path} does not hold a JSON object; treating it as empty")
            return {}

        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except Exception:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheUnavailableError(f"Cannot write cache file {self.path}: {exc}") from exc

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            if data.get(key) == value:
                return
            data[key] = value
            await asyncio.to_thread(self._write_all, data)
        logger.debug(f"Stored {key} in {self.path}")


class DatabaseStore(KeyValueStore):
    """Store kept in the ``cache_entries`` table."""

    backend = "database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                entry = await session.get(CacheEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as exc:
            raise CacheUnavailableError(f"Cannot read cache entry {key}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(CacheEntry, key)
                if entry is None:
                    session.add(CacheEntry(key=key, value=value))
                elif entry.value == value:
                    return
                else:
                    entry.value = value
                    entry.updated_at = datetime.now(UTC)
                await session.commit()
        except SQLAlchemyError as exc:
            raise CacheUnavailableError(f"Cannot write cache entry {key}: {exc}") from exc


def create_cache_store(settings: Settings) -> KeyValueStore:
    """Build the artifact cache store selected by ``CACHE_BACKEND``."""
    if settings.cache_backend == "database":
        from faceblend.database import AsyncSessionLocal
        return DatabaseStore(AsyncSessionLocal)
    return JsonFileStore(settings.cache_file_path)
