"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from faceblend.config import get_settings
from faceblend.dependencies import get_cache_store, get_daily_puzzle_service
from faceblend.services.cache_store import KeyValueStore
from faceblend.services.daily_puzzle_service import DailyPuzzleService
from faceblend.utils import lock_client
from faceblend.utils.exceptions import CacheUnavailableError
from faceblend.version import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(store: KeyValueStore = Depends(get_cache_store)):
    """Health check endpoint for monitoring."""
    try:
        await store.get("healthcheck")
        cache_status = "connected"
    except CacheUnavailableError as e:
        logger.error(f"Cache health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "Cache store unavailable"},
        )

    return {
        "status": "ok",
        "cache": f"{store.backend}:{cache_status}",
        "redis": lock_client.backend,
    }


@router.get("/status")
async def game_status(service: DailyPuzzleService = Depends(get_daily_puzzle_service)):
    """
    Get service status: version, environment, today's day key and whether
    today's fused image is already cached.
    """
    settings = get_settings()
    today = service.today()
    cached = await service.fused_image_service.cached_artifact(today)

    return {
        "version": APP_VERSION,
        "environment": settings.environment,
        "day_key": today,
        "day_timezone": settings.day_timezone,
        "pool_size": len(service.pool),
        "fused_image_cached": cached is not None,
    }
