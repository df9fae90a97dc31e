"""Daily puzzle endpoint."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from faceblend.dependencies import get_daily_puzzle_service
from faceblend.schemas.puzzle import DailyPuzzleResponse
from faceblend.services.daily_puzzle_service import DailyPuzzleService
from faceblend.utils.exceptions import FaceblendException, GenerationFailedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["daily-game"])


@router.get("/daily-game", response_model=DailyPuzzleResponse)
async def get_daily_game(service: DailyPuzzleService = Depends(get_daily_puzzle_service)):
    """Return today's puzzle. The payload is identical for every player on a given day."""
    try:
        return await service.get_puzzle()
    except GenerationFailedError as e:
        logger.error(f"Failed to generate today's fused image: {e}")
        raise HTTPException(status_code=503, detail="Failed to generate game data")
    except FaceblendException as e:
        logger.error(f"Failed to build today's puzzle: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate game data")
