"""Tests for the deterministic daily puzzle selection."""
import pytest

from faceblend.services.puzzle_selector import OPTION_COUNT, select_puzzle, shuffle_in_place
from faceblend.services.seeded_random import create_seeded_random
from faceblend.utils.exceptions import InsufficientPoolError
from tests.helpers import make_pool


def names(identities):
    return [identity.display_name for identity in identities]


def test_reference_selection_for_pool_of_ten():
    """The selection for a fixed day is pinned to the values produced by the live game."""

    pool = make_pool(10)

    selection = select_puzzle("2024-01-01", pool)

    assert names(selection.answer_identities) == ["Actor D", "Actor E"]
    assert names(selection.decoy_identities) == [
        "Actor H", "Actor C", "Actor F", "Actor G", "Actor J", "Actor B", "Actor A",
    ]
    assert list(selection.option_list) == [
        "Actor C", "Actor D", "Actor A", "Actor B", "Actor H", "Actor J", "Actor E", "Actor G", "Actor F",
    ]
    assert selection.correct_answers == ["Actor D", "Actor E"]


def test_reference_selection_next_day():
    selection = select_puzzle("2024-01-02", make_pool(10))

    assert names(selection.answer_identities) == ["Actor A", "Actor G"]
    assert names(selection.decoy_identities) == [
        "Actor J", "Actor B", "Actor E", "Actor H", "Actor F", "Actor D", "Actor C",
    ]
    assert list(selection.option_list) == [
        "Actor G", "Actor B", "Actor A", "Actor H", "Actor D", "Actor F", "Actor J", "Actor C", "Actor E",
    ]


def test_minimum_pool_uses_every_identity():
    pool = make_pool(9)

    selection = select_puzzle("2024-01-01", pool)

    assert names(selection.answer_identities) == ["Actor D", "Actor G"]
    assert list(selection.option_list) == [
        "Actor B", "Actor D", "Actor F", "Actor I", "Actor H", "Actor G", "Actor C", "Actor A", "Actor E",
    ]
    assert sorted(selection.option_list) == names(pool)


def test_selection_is_deterministic():
    pool = make_pool(26)

    first = select_puzzle("2024-07-04", pool)
    second = select_puzzle("2024-07-04", pool)

    assert first == second


@pytest.mark.parametrize("day", ["2024-01-01", "2024-02-29", "2024-12-31", "2025-06-15", "2030-01-01"])
def test_no_duplicates_and_options_are_a_permutation(day):
    pool = make_pool(12)

    selection = select_puzzle(day, pool)

    ids = [identity.id for identity in (*selection.answer_identities, *selection.decoy_identities)]
    assert len(ids) == len(set(ids)) == OPTION_COUNT
    assert sorted(selection.option_list) == sorted(
        names((*selection.answer_identities, *selection.decoy_identities))
    )


def test_pool_too_small_raises():
    with pytest.raises(InsufficientPoolError) as exc_info:
        select_puzzle("2024-01-01", make_pool(8))

    assert exc_info.value.pool_size == 8
    assert exc_info.value.required == OPTION_COUNT


def test_shuffle_keeps_every_item():
    items = list(range(20))

    shuffle_in_place(items, create_seeded_random("shuffle"))

    assert sorted(items) == list(range(20))
    assert items != list(range(20))
