"""Schemas for the per-player, per-day game state."""
from enum import Enum

from pydantic import Field

from faceblend.schemas.base import BaseSchema


class GameStatus(str, Enum):
    """Persisted game status. Loading is a transient UI concern and never stored."""
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class GameState(BaseSchema):
    """Snapshot of one player's progress on one day."""

    status: GameStatus = GameStatus.PLAYING
    guesses: list[list[str]] = Field(default_factory=list)
    revealed_correct: list[str] = Field(default_factory=list)
