"""API tests for the daily game and health endpoints."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from faceblend.dependencies import get_cache_store, get_daily_puzzle_service
from faceblend.main import app
from faceblend.services.daily_puzzle_service import DailyPuzzleService
from faceblend.services.metadata_service import IdentityHints
from faceblend.utils.exceptions import GenerationFailedError, GenerationTimeoutError
from faceblend.version import APP_VERSION
from tests.helpers import FAKE_IMAGE_URL, make_pool


def build_service(settings, pool_size=10, get_or_generate=None):
    enricher = MagicMock()
    enricher.enrich = AsyncMock(
        side_effect=lambda identity: IdentityHints(
            initials_hint="??", notable_works_hint="A famous role", era_hint="Within the past 100 years",
        )
    )
    fused = MagicMock()
    fused.get_or_generate = get_or_generate or AsyncMock(return_value=FAKE_IMAGE_URL)
    fused.cached_artifact = AsyncMock(return_value=None)

    service = DailyPuzzleService(make_pool(pool_size), enricher, fused, settings)
    service.today = lambda: "2024-01-01"
    return service


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_daily_game_returns_puzzle(client, settings):
    app.dependency_overrides[get_daily_puzzle_service] = lambda: build_service(settings)

    response = await client.get("/api/daily-game")

    assert response.status_code == 200
    data = response.json()
    assert data["day_key"] == "2024-01-01"
    assert data["fused_image_url"] == FAKE_IMAGE_URL
    assert data["correct_answers"] == ["Actor D", "Actor E"]
    assert len(data["answer_options"]) == 9
    assert data["identity1_hints"] == ["Within the past 100 years", "A famous role", "??"]
    assert data["identity1_portrait"] is None
    assert data["max_guesses"] == 7


@pytest.mark.asyncio
async def test_same_payload_for_every_request(client, settings):
    service = build_service(settings)
    app.dependency_overrides[get_daily_puzzle_service] = lambda: service

    first = await client.get("/api/daily-game")
    second = await client.get("/api/daily-game")

    assert first.json() == second.json()


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [GenerationFailedError("provider down"), GenerationTimeoutError("too slow")])
async def test_generation_failure_is_503(client, settings, error):
    service = build_service(settings, get_or_generate=AsyncMock(side_effect=error))
    app.dependency_overrides[get_daily_puzzle_service] = lambda: service

    response = await client.get("/api/daily-game")

    assert response.status_code == 503
    assert response.json() == {"detail": "Failed to generate game data"}


@pytest.mark.asyncio
async def test_small_pool_is_500(client, settings):
    app.dependency_overrides[get_daily_puzzle_service] = lambda: build_service(settings, pool_size=5)

    response = await client.get("/api/daily-game")

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to generate game data"}


@pytest.mark.asyncio
async def test_health(client, json_store):
    app.dependency_overrides[get_cache_store] = lambda: json_store

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["cache"] == "file:connected"


@pytest.mark.asyncio
async def test_health_reports_unavailable_cache(client, cache_path, json_store):
    cache_path.mkdir()
    app.dependency_overrides[get_cache_store] = lambda: json_store

    response = await client.get("/health")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_status(client, settings):
    app.dependency_overrides[get_daily_puzzle_service] = lambda: build_service(settings)

    response = await client.get("/status")

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == APP_VERSION
    assert data["day_key"] == "2024-01-01"
    assert data["pool_size"] == 10
    assert data["fused_image_cached"] is False


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["version"] == APP_VERSION
