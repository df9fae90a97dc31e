"""API routers."""
from faceblend.routers import daily_game, health

__all__ = [
    "daily_game",
    "health",
]
