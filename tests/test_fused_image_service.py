"""Tests for the cache-gated fused image generation."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from faceblend.config import Settings
from faceblend.services.ai.image_service import ImageServiceError
from faceblend.services.cache_store import JsonFileStore
from faceblend.services.fused_image_service import FusedImageService, artifact_key, model_version_key
from faceblend.utils.exceptions import CacheUnavailableError, GenerationFailedError, GenerationTimeoutError
from tests.helpers import FAKE_IMAGE_URL, make_pool

DAY = "2024-01-01"


@pytest.fixture
def answers():
    pool = make_pool(2)
    return pool[0], pool[1]


@pytest.fixture
def service(json_store, fake_image_service, lock_client, settings):
    return FusedImageService(json_store, fake_image_service, lock_client, settings)


def test_cache_keys():
    assert artifact_key(DAY) == "imageUrl_2024-01-01"
    assert model_version_key(DAY) == "modelVersion_2024-01-01"


@pytest.mark.asyncio
async def test_miss_generates_and_persists(service, fake_image_service, cache_path, answers):
    url = await service.get_or_generate(DAY, *answers)

    assert url == FAKE_IMAGE_URL
    fake_image_service.generate.assert_awaited_once()
    model_version, prompt, negative_prompt = fake_image_service.generate.await_args.args
    assert model_version == "model-v1"
    assert "Actor A and Actor B" in prompt
    assert "cartoon" in negative_prompt

    on_disk = json.loads(cache_path.read_text(encoding="utf-8"))
    assert on_disk == {"imageUrl_2024-01-01": FAKE_IMAGE_URL, "modelVersion_2024-01-01": "model-v1"}


@pytest.mark.asyncio
async def test_hit_skips_provider_and_lock(service, fake_image_service, json_store, answers):
    await json_store.set(artifact_key(DAY), "https://cached/url.png")
    service.lock_client = MagicMock()

    url = await service.get_or_generate(DAY, *answers)

    assert url == "https://cached/url.png"
    fake_image_service.resolve_model_version.assert_not_awaited()
    fake_image_service.generate.assert_not_awaited()
    service.lock_client.lock.assert_not_called()


@pytest.mark.asyncio
async def test_second_call_reuses_first_result(service, fake_image_service, answers):
    first = await service.get_or_generate(DAY, *answers)
    second = await service.get_or_generate(DAY, *answers)

    assert first == second
    assert fake_image_service.generate.await_count == 1


@pytest.mark.asyncio
async def test_concurrent_misses_generate_once(service, fake_image_service, answers):
    async def slow_generate(*args):
        await asyncio.sleep(0.05)
        return FAKE_IMAGE_URL

    fake_image_service.generate = AsyncMock(side_effect=slow_generate)

    results = await asyncio.gather(*(service.get_or_generate(DAY, *answers) for _ in range(10)))

    assert results == [FAKE_IMAGE_URL] * 10
    assert fake_image_service.generate.await_count == 1
    assert fake_image_service.resolve_model_version.await_count == 1


@pytest.mark.asyncio
async def test_different_days_generate_independently(service, fake_image_service, answers):
    fake_image_service.generate = AsyncMock(side_effect=["https://img/1.png", "https://img/2.png"])

    first = await service.get_or_generate("2024-01-01", *answers)
    second = await service.get_or_generate("2024-01-02", *answers)

    assert (first, second) == ("https://img/1.png", "https://img/2.png")


@pytest.mark.asyncio
async def test_result_survives_restart(cache_path, fake_image_service, lock_client, settings, answers):
    first_process = FusedImageService(JsonFileStore(cache_path), fake_image_service, lock_client, settings)
    url = await first_process.get_or_generate(DAY, *answers)

    restarted_provider = MagicMock()
    restarted_provider.resolve_model_version = AsyncMock()
    restarted_provider.generate = AsyncMock()
    second_process = FusedImageService(JsonFileStore(cache_path), restarted_provider, lock_client, settings)

    assert await second_process.get_or_generate(DAY, *answers) == url
    restarted_provider.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_failure_writes_no_artifact(service, fake_image_service, json_store, answers):
    fake_image_service.generate = AsyncMock(side_effect=ImageServiceError("prediction failed"))

    with pytest.raises(GenerationFailedError):
        await service.get_or_generate(DAY, *answers)

    assert await json_store.get(artifact_key(DAY)) is None
    # The version lookup already happened and stays cached for the retry
    assert await json_store.get(model_version_key(DAY)) == "model-v1"


@pytest.mark.asyncio
async def test_failure_then_retry_succeeds(service, fake_image_service, answers):
    fake_image_service.generate = AsyncMock(side_effect=[ImageServiceError("boom"), FAKE_IMAGE_URL])

    with pytest.raises(GenerationFailedError):
        await service.get_or_generate(DAY, *answers)

    assert await service.get_or_generate(DAY, *answers) == FAKE_IMAGE_URL
    assert fake_image_service.resolve_model_version.await_count == 1


@pytest.mark.asyncio
async def test_empty_output_is_a_failure(service, fake_image_service, json_store, answers):
    fake_image_service.generate = AsyncMock(return_value="   ")

    with pytest.raises(GenerationFailedError):
        await service.get_or_generate(DAY, *answers)

    assert await json_store.get(artifact_key(DAY)) is None


@pytest.mark.asyncio
async def test_version_lookup_failure_is_a_generation_failure(service, fake_image_service, json_store, answers):
    fake_image_service.resolve_model_version = AsyncMock(side_effect=ImageServiceError("no token"))

    with pytest.raises(GenerationFailedError):
        await service.get_or_generate(DAY, *answers)

    fake_image_service.generate.assert_not_awaited()
    assert await json_store.get(model_version_key(DAY)) is None


@pytest.mark.asyncio
async def test_cached_model_version_is_reused(service, fake_image_service, json_store, answers):
    await json_store.set(model_version_key(DAY), "pinned-version")

    await service.get_or_generate(DAY, *answers)

    fake_image_service.resolve_model_version.assert_not_awaited()
    assert fake_image_service.generate.await_args.args[0] == "pinned-version"


@pytest.mark.asyncio
async def test_timeout_raises_and_writes_nothing(service, fake_image_service, json_store, answers):
    async def hang(*args):
        await asyncio.sleep(10)

    fake_image_service.generate = AsyncMock(side_effect=hang)

    with pytest.raises(GenerationTimeoutError):
        await service.get_or_generate(DAY, *answers, timeout=0.05)

    assert await json_store.get(artifact_key(DAY)) is None


@pytest.mark.asyncio
async def test_waiting_too_long_for_lock_times_out(json_store, fake_image_service, lock_client, answers):
    settings = Settings(_env_file=None, generation_timeout_seconds=0.05, generation_lock_timeout_seconds=0.05)
    service = FusedImageService(json_store, fake_image_service, lock_client, settings)

    async with lock_client.lock(f"fused-image:{DAY}", timeout=1.0):
        with pytest.raises(GenerationTimeoutError):
            await service.get_or_generate(DAY, *answers)

    fake_image_service.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_unreadable_cache_is_treated_as_miss(fake_image_service, lock_client, settings, answers):
    store = MagicMock()
    store.get = AsyncMock(side_effect=CacheUnavailableError("disk gone"))
    store.set = AsyncMock(side_effect=CacheUnavailableError("disk gone"))
    service = FusedImageService(store, fake_image_service, lock_client, settings)

    # Generation still succeeds; the result just is not remembered
    assert await service.get_or_generate(DAY, *answers) == FAKE_IMAGE_URL
    fake_image_service.generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_cached_artifact_never_generates(service, fake_image_service):
    assert await service.cached_artifact(DAY) is None
    fake_image_service.generate.assert_not_awaited()
