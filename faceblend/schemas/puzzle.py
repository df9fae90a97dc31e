"""Schemas for the daily puzzle payload."""
from pydantic import Field

from faceblend.schemas.base import BaseSchema


class DailyPuzzleResponse(BaseSchema):
    """Everything a client needs to play today's puzzle.

    The correct answers are included because guesses are validated on the
    client; the payload is identical for every player on a given day.
    """

    day_key: str = Field(..., description="Calendar day of this puzzle (YYYY-MM-DD)")
    fused_image_url: str
    answer_options: list[str] = Field(..., min_length=9, max_length=9)
    correct_answers: list[str] = Field(..., min_length=2, max_length=2)
    identity1_hints: list[str] = Field(..., min_length=3, max_length=3)
    identity2_hints: list[str] = Field(..., min_length=3, max_length=3)
    identity1_portrait: str | None = None
    identity2_portrait: str | None = None
    max_guesses: int
