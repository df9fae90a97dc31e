"""
Cache-gated, at-most-once-per-day generation of the fused portrait.

Generation is slow, billed per call and not idempotent, so the persistent
store is the source of truth: once ``imageUrl_<day>`` exists every caller
gets that value, across restarts. Misses are serialized per day with a named
lock and re-checked under it, so concurrent first requests produce exactly
one provider call.
"""

import asyncio
import logging
from typing import Optional

from faceblend.config import Settings, get_settings
from faceblend.schemas.identity import Identity
from faceblend.services.ai.image_service import ImageGenerationService, ImageServiceError
from faceblend.services.ai.prompt_builder import NEGATIVE_PROMPT, build_fusion_prompt
from faceblend.services.cache_store import KeyValueStore
from faceblend.utils.exceptions import CacheUnavailableError, GenerationFailedError, GenerationTimeoutError
from faceblend.utils.lock_client import LockClient, LockTimeoutError

logger = logging.getLogger(__name__)

ARTIFACT_KEY_PREFIX = "imageUrl_"
MODEL_VERSION_KEY_PREFIX = "modelVersion_"


def artifact_key(day_key: str) -> str:
    return f"{ARTIFACT_KEY_PREFIX}{day_key}"


def model_version_key(day_key: str) -> str:
    return f"{MODEL_VERSION_KEY_PREFIX}{day_key}"


class FusedImageService:
    """Return the day's fused image, generating it only when no cached entry exists."""

    def __init__(
            self,
            store: KeyValueStore,
            image_service: ImageGenerationService,
            lock_client: LockClient,
            settings: Settings | None = None,
    ):
        self.store = store
        self.image_service = image_service
        self.lock_client = lock_client
        self.settings = settings or get_settings()

    async def _read(self, key: str) -> Optional[str]:
        """Read a cache entry; an unreadable store behaves like an empty one."""
        try:
            return await self.store.get(key)
        except CacheUnavailableError as exc:
            logger.warning(f"Cache unavailable while reading {key}, treating as miss: {exc}")
            return None

    async def _write(self, key: str, value: str) -> bool:
        try:
            await self.store.set(key, value)
            return True
        except CacheUnavailableError as exc:
            logger.error(f"Cache unavailable while writing {key}; it will be regenerated next time: {exc}")
            return False

    async def cached_artifact(self, day_key: str) -> Optional[str]:
        """Return the stored artifact for ``day_key`` without generating anything."""
        return await self._read(artifact_key(day_key))

    async def get_or_generate(
            self,
            day_key: str,
            first: Identity,
            second: Identity,
            timeout: float | None = None,
    ) -> str:
        """
        Return the fused image reference for ``day_key``.

        Args:
            day_key: Calendar day, ``YYYY-MM-DD``
            first: First answer identity
            second: Second answer identity
            timeout: Seconds allowed for the provider on a miss (defaults to settings)

        Returns:
            Artifact reference (image URL); identical for every call once stored

        Raises:
            GenerationFailedError: If the provider fails or returns nothing; nothing is cached
            GenerationTimeoutError: If generation or waiting for another caller's generation times out
        """
        key = artifact_key(day_key)

        cached = await self._read(key)
        if cached:
            logger.info(f"Cache hit! Serving fused image for {day_key}")
            return cached

        logger.info(f"Cache miss for {day_key}, acquiring generation lock")
        lock_timeout = self.settings.generation_lock_timeout_seconds
        try:
            async with self.lock_client.lock(f"fused-image:{day_key}", timeout=lock_timeout):
                # Another caller may have committed while we waited
                cached = await self._read(key)
                if cached:
                    logger.info(f"Fused image for {day_key} was generated by a concurrent request")
                    return cached

                return await self._generate(day_key, first, second, timeout)
        except LockTimeoutError as exc:
            raise GenerationTimeoutError(
                f"Timed out after {lock_timeout}s waiting for the in-flight generation for {day_key}"
            ) from exc

    async def _generate(self, day_key: str, first: Identity, second: Identity, timeout: float | None) -> str:
        if timeout is None:
            timeout = self.settings.generation_timeout_seconds

        logger.info(f"Generating new fused image for {day_key}...")
        try:
            image_url = await asyncio.wait_for(self._call_provider(day_key, first, second), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise GenerationTimeoutError(f"Image generation for {day_key} exceeded {timeout}s") from exc
        except ImageServiceError as exc:
            raise GenerationFailedError(f"Image generation failed for {day_key}: {exc}") from exc

        if not image_url or not image_url.strip():
            raise GenerationFailedError(f"Image generation for {day_key} produced no output")

        image_url = image_url.strip()
        if await self._write(artifact_key(day_key), image_url):
            logger.info(f"New fused image for {day_key} saved to cache")
        return image_url

    async def _call_provider(self, day_key: str, first: Identity, second: Identity) -> str:
        model_version = await self._resolve_model_version(day_key)
        prompt = build_fusion_prompt(first.display_name, second.display_name)
        return await self.image_service.generate(model_version, prompt, NEGATIVE_PROMPT)

    async def _resolve_model_version(self, day_key: str) -> str:
        key = model_version_key(day_key)
        model_version = await self._read(key)
        if model_version:
            logger.info(f"Using cached model version: {model_version}")
            return model_version

        model_version = await self.image_service.resolve_model_version()
        if not model_version:
            raise ImageServiceError("Image provider returned an empty model version")
        await self._write(key, model_version)
        logger.info(f"Latest model version cached: {model_version}")
        return model_version
