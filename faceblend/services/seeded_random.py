"""
Deterministic pseudo-random stream derived from a day key.

The hash and mixing constants below decide every past and future puzzle.
They must never change: doing so silently reshuffles the answers of every
day that has already been played.
"""

from typing import Callable

_MASK32 = 0xFFFFFFFF
_SEED_BASIS = 1779033703
_SEED_MULTIPLIER = 3432918353
_MIX_MULTIPLIER_1 = 2246822507
_MIX_MULTIPLIER_2 = 3266489909
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """Low 32 bits of the product, as an unsigned integer."""
    return (a * b) & _MASK32


def _code_units(seed: str) -> list[int]:
    """UTF-16 code units of ``seed`` (identical to the bytes for ASCII input)."""
    raw = seed.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def _hash_seed(seed: str) -> int:
    units = _code_units(seed)
    h = (_SEED_BASIS ^ len(units)) & _MASK32
    for unit in units:
        h = _imul(h ^ unit, _SEED_MULTIPLIER)
        h = ((h << 13) | (h >> 19)) & _MASK32
    return h


def create_seeded_random(seed: str) -> Callable[[], float]:
    """
    Derive an unbounded, reproducible stream of floats in ``[0, 1)`` from ``seed``.

    Two streams created from the same seed yield identical sequences in any
    process, on any day. No wall clock, OS entropy or object identity is used.
    Not suitable for cryptographic purposes.

    Args:
        seed: Non-empty seed string, normally a ``YYYY-MM-DD`` day key

    Returns:
        A ``next()`` callable returning the following value of the stream

    Raises:
        ValueError: If ``seed`` is empty
    """
    if not seed:
        raise ValueError("seed must be a non-empty string")

    state = _hash_seed(seed)

    def next_value() -> float:
        nonlocal state
        h = _imul(state ^ (state >> 16), _MIX_MULTIPLIER_1)
        h = _imul(h ^ (h >> 13), _MIX_MULTIPLIER_2)
        h ^= h >> 16
        state = h
        return h / _TWO_POW_32

    return next_value


def draw_index(next_value: Callable[[], float], size: int) -> int:
    """Draw an index in ``range(size)`` from the stream."""
    return int(next_value() * size)
