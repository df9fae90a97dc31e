"""Pytest configuration and fixtures."""
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Keep tests on local backends and away from real providers
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_faceblend.db"
os.environ["CACHE_BACKEND"] = "file"
os.environ["REDIS_URL"] = ""
os.environ["REPLICATE_API_TOKEN"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["TMDB_API_KEY"] = ""
os.environ["DAY_TIMEZONE"] = "UTC"

from faceblend.config import Settings, get_settings
from faceblend.services.cache_store import JsonFileStore
from faceblend.utils.lock_client import LockClient
from tests.helpers import FAKE_IMAGE_URL, make_pool


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; drop the cache so env tweaks in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        generation_timeout_seconds=5.0,
        generation_lock_timeout_seconds=10.0,
        replicate_poll_interval_seconds=0.01,
    )


@pytest.fixture
def pool():
    return make_pool(10)


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache.json"


@pytest.fixture
def json_store(cache_path):
    return JsonFileStore(cache_path)


@pytest.fixture
def lock_client():
    """A fresh in-memory lock client per test (asyncio locks are bound to one loop)."""
    return LockClient()


@pytest.fixture
def fake_image_service():
    """Stand-in for ImageGenerationService that never leaves the process."""
    service = MagicMock()
    service.resolve_model_version = AsyncMock(return_value="model-v1")
    service.generate = AsyncMock(return_value=FAKE_IMAGE_URL)
    service.close = AsyncMock()
    return service
