"""Tests for the JSON-file and database key/value stores."""
import json
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from faceblend.config import Settings
from faceblend.database import Base
from faceblend.services.cache_store import DatabaseStore, JsonFileStore, create_cache_store
from faceblend.utils.exceptions import CacheUnavailableError


class TestJsonFileStore:

    @pytest.mark.asyncio
    async def test_missing_file_reads_as_empty(self, json_store, cache_path):
        assert not cache_path.exists()
        assert await json_store.get("imageUrl_2024-01-01") is None

    @pytest.mark.asyncio
    async def test_set_persists_flat_json_object(self, json_store, cache_path):
        await json_store.set("imageUrl_2024-01-01", "https://img/1.png")
        await json_store.set("modelVersion_2024-01-01", "abc123")

        on_disk = json.loads(cache_path.read_text(encoding="utf-8"))
        assert on_disk == {
            "imageUrl_2024-01-01": "https://img/1.png",
            "modelVersion_2024-01-01": "abc123",
        }

    @pytest.mark.asyncio
    async def test_values_survive_a_new_instance(self, json_store, cache_path):
        await json_store.set("imageUrl_2024-01-01", "https://img/1.png")

        reopened = JsonFileStore(cache_path)

        assert await reopened.get("imageUrl_2024-01-01") == "https://img/1.png"

    @pytest.mark.asyncio
    async def test_corrupt_file_reads_as_empty(self, json_store, cache_path):
        cache_path.write_text("{not json", encoding="utf-8")

        assert await json_store.get("imageUrl_2024-01-01") is None

        # Writing replaces the corrupt content with a valid object
        await json_store.set("imageUrl_2024-01-02", "https://img/2.png")
        assert json.loads(cache_path.read_text(encoding="utf-8")) == {"imageUrl_2024-01-02": "https://img/2.png"}

    @pytest.mark.asyncio
    async def test_non_object_file_reads_as_empty(self, json_store, cache_path):
        cache_path.write_text(json.dumps(["a", "b"]), encoding="utf-8")

        assert await json_store.get("0") is None

    @pytest.mark.asyncio
    async def test_identical_rewrite_does_not_touch_file(self, json_store, cache_path):
        await json_store.set("imageUrl_2024-01-01", "https://img/1.png")

        with patch.object(JsonFileStore, "_write_all") as mock_write:
            await json_store.set("imageUrl_2024-01-01", "https://img/1.png")

        mock_write.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_store_raises_cache_unavailable(self, json_store, cache_path):
        # A directory where the file should be cannot be read as a file
        cache_path.mkdir()

        with pytest.raises(CacheUnavailableError):
            await json_store.get("imageUrl_2024-01-01")

    @pytest.mark.asyncio
    async def test_creates_parent_directories(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "dir" / "cache.json")

        await store.set("k", "v")

        assert await store.get("k") == "v"


@pytest.fixture
async def database_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield DatabaseStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    await engine.dispose()


class TestDatabaseStore:

    @pytest.mark.asyncio
    async def test_get_missing_key(self, database_store):
        assert await database_store.get("imageUrl_2024-01-01") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, database_store):
        await database_store.set("imageUrl_2024-01-01", "https://img/1.png")

        assert await database_store.get("imageUrl_2024-01-01") == "https://img/1.png"

    @pytest.mark.asyncio
    async def test_overwrite_with_new_value(self, database_store):
        await database_store.set("modelVersion_2024-01-01", "v1")
        await database_store.set("modelVersion_2024-01-01", "v2")

        assert await database_store.get("modelVersion_2024-01-01") == "v2"

    @pytest.mark.asyncio
    async def test_missing_table_raises_cache_unavailable(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        store = DatabaseStore(async_sessionmaker(engine, class_=AsyncSession))

        with pytest.raises(CacheUnavailableError):
            await store.get("imageUrl_2024-01-01")

        await engine.dispose()


def test_create_cache_store_defaults_to_file(tmp_path):
    store = create_cache_store(Settings(_env_file=None, cache_file_path=tmp_path / "c.json"))

    assert isinstance(store, JsonFileStore)
    assert store.backend == "file"


def test_create_cache_store_database_backend():
    store = create_cache_store(Settings(_env_file=None, cache_backend="database"))

    assert isinstance(store, DatabaseStore)
    assert store.backend == "database"
