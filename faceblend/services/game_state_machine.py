"""Guess/reveal state machine for one player's daily game.

The machine holds no I/O of its own; ``GameStateStore`` persists its
``GameState`` snapshot once per day so progress survives a restart.
"""
import json
import logging
from enum import Enum
from typing import Iterable, Optional, Sequence

from pydantic import ValidationError

from faceblend.schemas.game_state import GameState, GameStatus
from faceblend.services.cache_store import KeyValueStore
from faceblend.utils.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

MAX_GUESSES = 7
ANSWERS_PER_PUZZLE = 2
HINTS_PER_IDENTITY = 3
# The second identity's hints start unlocking after the first identity's are all shown
SECOND_IDENTITY_HINT_OFFSET = 3

GAME_STATE_KEY_PREFIX = "gameState_"


class OptionStatus(str, Enum):
    """How an answer option should be presented to the player."""
    CORRECT = "correct"
    REVEALED = "revealed"
    SELECTED = "selected"
    INCORRECT = "incorrect"
    AVAILABLE = "available"


def is_consistent(state: GameState, correct_answers: Iterable[str], max_guesses: int = MAX_GUESSES) -> bool:
    """Check that ``state`` could have been produced by playing this puzzle."""
    answers = set(correct_answers)
    revealed = set(state.revealed_correct)

    if len(revealed) != len(state.revealed_correct) or not revealed <= answers:
        return False
    if len(state.guesses) > max_guesses:
        return False
    if any(len(guess) > ANSWERS_PER_PUZZLE for guess in state.guesses):
        return False

    if len(revealed) == ANSWERS_PER_PUZZLE:
        return state.status == GameStatus.WON
    if len(state.guesses) == max_guesses:
        return state.status == GameStatus.LOST
    return state.status == GameStatus.PLAYING


class GameStateMachine:
    """
    Drive one player's game against the day's answers.

    Invalid moves (wrong number of names, names that are not options, moves
    after the game ended) are ignored and reported by a ``False`` return
    instead of raising: the caller is an untrusted client.
    """

    def __init__(
            self,
            correct_answers: Sequence[str],
            answer_options: Sequence[str],
            state: Optional[GameState] = None,
            max_guesses: int = MAX_GUESSES,
    ):
        if len(set(correct_answers)) != ANSWERS_PER_PUZZLE:
            raise ValueError(f"A puzzle needs exactly {ANSWERS_PER_PUZZLE} distinct correct answers")
        if not set(correct_answers) <= set(answer_options):
            raise ValueError("Correct answers must be among the answer options")

        self.correct_answers = list(correct_answers)
        self.answer_options = list(answer_options)
        self.max_guesses = max_guesses
        self.state = state or GameState()
        self.pending: list[str] = []

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def is_over(self) -> bool:
        return self.state.status != GameStatus.PLAYING

    @property
    def guesses_used(self) -> int:
        return len(self.state.guesses)

    @property
    def picks_remaining(self) -> int:
        """How many more names the pending selection can hold."""
        return ANSWERS_PER_PUZZLE - len(self.state.revealed_correct) - len(self.pending)

    def toggle_selection(self, name: str) -> bool:
        """Add or remove ``name`` from the pending selection. Returns True if it changed."""
        if self.is_over or name in self.state.revealed_correct or name not in self.answer_options:
            return False

        if name in self.pending:
            self.pending.remove(name)
            return True

        if self.picks_remaining <= 0:
            return False

        self.pending.append(name)
        return True

    def submit_guess(self, selected: Optional[Iterable[str]] = None) -> bool:
        """
        Submit ``selected`` (or the pending selection) as the next guess.

        Returns:
            True if the guess was accepted and recorded, False if it was ignored
        """
        if self.is_over:
            return False

        names = list(dict.fromkeys(self.pending if selected is None else selected))
        revealed = set(self.state.revealed_correct)

        if any(name in revealed for name in names):
            return False
        if len(set(names) | revealed) != ANSWERS_PER_PUZZLE:
            return False
        if any(name not in self.answer_options for name in names):
            return False

        newly_correct = [name for name in names if name in self.correct_answers]
        revealed_correct = self.state.revealed_correct + newly_correct
        guesses = self.state.guesses + [names]

        if len(revealed_correct) == ANSWERS_PER_PUZZLE:
            status = GameStatus.WON
        elif len(guesses) >= self.max_guesses:
            status = GameStatus.LOST
        else:
            status = GameStatus.PLAYING

        self.state = GameState(status=status, guesses=guesses, revealed_correct=revealed_correct)
        self.pending = []

        logger.debug(f"Guess {len(guesses)}/{self.max_guesses} accepted: {names} -> {status.value}")
        return True

    def visible_hints(self, hints: Sequence[str], identity_index: int) -> list[str]:
        """Hints of identity ``identity_index`` (0 or 1) unlocked by the guesses so far."""
        offset = 0 if identity_index == 0 else SECOND_IDENTITY_HINT_OFFSET
        return [hint for i, hint in enumerate(hints) if self.guesses_used > i + offset]

    def option_status(self, name: str) -> OptionStatus:
        if self.is_over:
            return OptionStatus.CORRECT if name in self.correct_answers else OptionStatus.INCORRECT
        if name in self.state.revealed_correct:
            return OptionStatus.REVEALED
        if name in self.pending:
            return OptionStatus.SELECTED

        guessed = {guess for attempt in self.state.guesses for guess in attempt}
        if name in guessed and name not in self.correct_answers:
            return OptionStatus.INCORRECT
        return OptionStatus.AVAILABLE

    def share_text(self, title: str, day_label: str, url: str = "") -> str:
        """Score summary to paste elsewhere, e.g. ``"3/7"`` or ``"X/7"`` for a loss."""
        if self.state.status == GameStatus.WON:
            result = f"{self.guesses_used}/{self.max_guesses}"
        else:
            result = f"X/{self.max_guesses}"

        text = f"{title} {day_label}\n{result}\n\nCan you guess today's face?"
        if url:
            text = f"{text}\n\n{url}"
        return text


def game_state_key(day_key: str) -> str:
    return f"{GAME_STATE_KEY_PREFIX}{day_key}"


class GameStateStore:
    """Persist one ``GameState`` per calendar day in a key/value store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load(self, day_key: str, correct_answers: Sequence[str]) -> GameState:
        """Return the saved state for ``day_key``, or a fresh one if it is absent or unusable."""
        key = game_state_key(day_key)
        try:
            raw = await self.store.get(key)
        except CacheUnavailableError as e:
            logger.warning(f"Could not read saved game for {day_key}, starting fresh: {e}")
            return GameState()

        if raw is None:
            return GameState()

        try:
            state = GameState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Saved game for {day_key} is corrupt, starting fresh: {e}")
            return GameState()

        if not is_consistent(state, correct_answers):
            logger.warning(f"Saved game for {day_key} does not match today's puzzle, starting fresh")
            return GameState()

        return state

    async def save(self, day_key: str, state: GameState) -> None:
        await self.store.set(game_state_key(day_key), state.model_dump_json())
