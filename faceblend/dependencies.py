"""FastAPI dependencies.

Long-lived collaborators (stores, HTTP clients, the puzzle service) are built
once per process and shared by every request. Tests replace them through
``app.dependency_overrides``.
"""
import logging
from functools import lru_cache

from faceblend.config import get_settings
from faceblend.services.ai.image_service import ImageGenerationService
from faceblend.services.cache_store import KeyValueStore, create_cache_store
from faceblend.services.daily_puzzle_service import DailyPuzzleService
from faceblend.services.fused_image_service import FusedImageService
from faceblend.services.identity_pool import get_identity_pool
from faceblend.services.metadata_service import MetadataEnricher, TMDBClient
from faceblend.utils import lock_client

logger = logging.getLogger(__name__)


@lru_cache()
def get_cache_store() -> KeyValueStore:
    settings = get_settings()
    store = create_cache_store(settings)
    logger.info(f"Artifact cache backend: {store.backend}")
    return store


@lru_cache()
def get_image_service() -> ImageGenerationService:
    return ImageGenerationService(get_settings())


@lru_cache()
def get_metadata_enricher() -> MetadataEnricher:
    settings = get_settings()
    client = TMDBClient(
        api_key=settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        timeout=settings.metadata_timeout_seconds,
    )
    return MetadataEnricher(client, image_base_url=settings.tmdb_image_base_url)


@lru_cache()
def get_fused_image_service() -> FusedImageService:
    return FusedImageService(get_cache_store(), get_image_service(), lock_client, get_settings())


@lru_cache()
def get_daily_puzzle_service() -> DailyPuzzleService:
    settings = get_settings()
    return DailyPuzzleService(
        pool=get_identity_pool(settings.identity_pool_path),
        enricher=get_metadata_enricher(),
        fused_image_service=get_fused_image_service(),
        settings=settings,
    )


async def close_clients() -> None:
    """Close HTTP clients that were opened during the process lifetime."""
    if get_metadata_enricher.cache_info().currsize:
        await get_metadata_enricher().close()
        logger.info("TMDB client closed")
    if get_image_service.cache_info().currsize:
        await get_image_service().close()
        logger.info("Image provider client closed")
