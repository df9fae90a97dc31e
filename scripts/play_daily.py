#!/usr/bin/env python3
"""
Play today's puzzle in the terminal.

Fetches the daily puzzle from a running API, then drives the guess/reveal
game locally. Progress is saved per day, so quitting and coming back later
resumes the same game.

Usage:
    python scripts/play_daily.py [--api-url http://localhost:8000] [--state-file ~/.faceblend/state.json]
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable

import httpx

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from faceblend.config import get_settings
from faceblend.schemas.game_state import GameStatus
from faceblend.schemas.puzzle import DailyPuzzleResponse
from faceblend.services.cache_store import JsonFileStore
from faceblend.services.game_state_machine import GameStateMachine, GameStateStore, OptionStatus

logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path.home() / ".faceblend" / "state.json"

STATUS_MARKERS = {
    OptionStatus.CORRECT: "[+]",
    OptionStatus.REVEALED: "[+]",
    OptionStatus.SELECTED: "[*]",
    OptionStatus.INCORRECT: "[x]",
    OptionStatus.AVAILABLE: "[ ]",
}


async def fetch_puzzle(api_url: str, client: httpx.AsyncClient | None = None) -> DailyPuzzleResponse:
    """Download today's puzzle from the API."""
    owns_client = client is None
    client = client or httpx.AsyncClient(base_url=api_url, timeout=60.0)
    try:
        response = await client.get("/api/daily-game")
        response.raise_for_status()
        return DailyPuzzleResponse.model_validate(response.json())
    finally:
        if owns_client:
            await client.aclose()


def render(puzzle: DailyPuzzleResponse, machine: GameStateMachine) -> str:
    lines = [f"Fused portrait: {puzzle.fused_image_url}", ""]

    for index, hints in enumerate((puzzle.identity1_hints, puzzle.identity2_hints)):
        visible = machine.visible_hints(hints, index)
        lines.append(f"Identity {index + 1}: " + (" | ".join(visible) if visible else "(no hints yet)"))

    lines.append("")
    for number, name in enumerate(puzzle.answer_options, start=1):
        lines.append(f"  {number}. {STATUS_MARKERS[machine.option_status(name)]} {name}")

    lines.append("")
    lines.append(f"Guess {machine.guesses_used + 1}/{machine.max_guesses}, pick {machine.picks_remaining} more")
    return "\n".join(lines)


def parse_picks(raw: str, options: list[str]) -> list[str] | None:
    """Turn ``"2 7"`` into option names; None if any token is not a valid option number."""
    picks = []
    for token in raw.replace(",", " ").split():
        if not token.isdigit() or not 1 <= int(token) <= len(options):
            return None
        picks.append(options[int(token) - 1])
    return picks


async def play(
        puzzle: DailyPuzzleResponse,
        state_store: GameStateStore,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
) -> GameStateMachine:
    """Run the game loop until the game ends or input runs out."""
    state = await state_store.load(puzzle.day_key, puzzle.correct_answers)
    machine = GameStateMachine(
        puzzle.correct_answers,
        puzzle.answer_options,
        state=state,
        max_guesses=puzzle.max_guesses,
    )

    while not machine.is_over:
        write(render(puzzle, machine))
        try:
            raw = read_line("Option numbers (q to quit): ").strip()
        except EOFError:
            break
        if raw.lower() in ("q", "quit"):
            break

        picks = parse_picks(raw, puzzle.answer_options)
        if picks is None:
            write("Please enter option numbers from the list.")
            continue

        if not machine.submit_guess(picks):
            write(f"Pick exactly {machine.picks_remaining} option(s) that are not already revealed.")
            continue

        await state_store.save(puzzle.day_key, machine.state)

    if machine.is_over:
        write(render(puzzle, machine))
        write("You got it!" if machine.status == GameStatus.WON else f"The answers were: {', '.join(puzzle.correct_answers)}")
        settings = get_settings()
        write(machine.share_text(settings.share_title, puzzle.day_key, settings.share_url))

    return machine


async def main(args: argparse.Namespace) -> int:
    try:
        puzzle = await fetch_puzzle(args.api_url)
    except httpx.HTTPError as e:
        logger.error(f"Could not fetch today's puzzle: {e}")
        return 1

    await play(puzzle, GameStateStore(JsonFileStore(args.state_file)))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Play today's Old School Faces puzzle")
    parser.add_argument("--api-url", default="http://localhost:8000", help="Base URL of the API")
    parser.add_argument("--state-file", type=Path, default=DEFAULT_STATE_FILE, help="Where progress is saved")
    sys.exit(asyncio.run(main(parser.parse_args())))
