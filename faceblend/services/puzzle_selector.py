"""Deterministic daily selection of answers, decoys and option order."""
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from faceblend.schemas.identity import Identity
from faceblend.services.seeded_random import create_seeded_random, draw_index
from faceblend.utils.exceptions import InsufficientPoolError

logger = logging.getLogger(__name__)

ANSWER_COUNT = 2
DECOY_COUNT = 7
OPTION_COUNT = ANSWER_COUNT + DECOY_COUNT


@dataclass(frozen=True)
class PuzzleSelection:
    """The visible puzzle state for one day, reconstructible from the day key alone."""

    day_key: str
    answer_identities: tuple[Identity, Identity]
    decoy_identities: tuple[Identity, ...]
    option_list: tuple[str, ...]

    @property
    def correct_answers(self) -> list[str]:
        return [identity.display_name for identity in self.answer_identities]


def select_puzzle(day_key: str, pool: Sequence[Identity]) -> PuzzleSelection:
    """
    Pick two answers and seven decoys for ``day_key`` and shuffle the options.

    Selection and shuffling consume one seeded stream in a fixed order, so the
    result depends only on the day key and the pool (contents and order).

    Args:
        day_key: Calendar day, ``YYYY-MM-DD``
        pool: Ordered identity pool

    Returns:
        PuzzleSelection for the day

    Raises:
        InsufficientPoolError: If the pool has fewer than nine identities
    """
    pool_size = len(pool)
    if pool_size < OPTION_COUNT:
        raise InsufficientPoolError(pool_size, OPTION_COUNT)

    next_value = create_seeded_random(day_key)

    index1 = draw_index(next_value, pool_size)
    index2 = draw_index(next_value, pool_size)
    while index2 == index1:
        index2 = draw_index(next_value, pool_size)

    used_indices = {index1, index2}
    decoy_indices: list[int] = []
    # Rejection sampling over a fixed stream is still fully deterministic
    while len(decoy_indices) < DECOY_COUNT:
        candidate = draw_index(next_value, pool_size)
        if candidate not in used_indices:
            used_indices.add(candidate)
            decoy_indices.append(candidate)

    answers = (pool[index1], pool[index2])
    decoys = tuple(pool[i] for i in decoy_indices)

    options = [identity.display_name for identity in (*answers, *decoys)]
    shuffle_in_place(options, next_value)

    logger.debug(f"Selected puzzle for {day_key}: answers={index1},{index2} decoys={decoy_indices}")

    return PuzzleSelection(
        day_key=day_key,
        answer_identities=answers,
        decoy_identities=decoys,
        option_list=tuple(options),
    )


def shuffle_in_place(items: list, next_value: Callable[[], float]) -> None:
    """Fisher-Yates shuffle driven by the given stream instead of ``random``."""
    for i in range(len(items) - 1, 0, -1):
        j = draw_index(next_value, i + 1)
        items[i], items[j] = items[j], items[i]
