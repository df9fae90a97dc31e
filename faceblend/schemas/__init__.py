"""Pydantic schemas."""
from faceblend.schemas.game_state import GameState, GameStatus
from faceblend.schemas.identity import Identity
from faceblend.schemas.puzzle import DailyPuzzleResponse

__all__ = ["DailyPuzzleResponse", "GameState", "GameStatus", "Identity"]
