"""Deterministic pseudo-random numbers for score generation.

Every random decision made while composing a score flows through a
:class:`SeededRNG` instance.  The generator implements the Mulberry32 mixing
function on an unsigned 32-bit state so the full output sequence for a given
seed is identical on every platform and in any reimplementation that uses the
same wraparound arithmetic.

Example
-------
>>> rng = SeededRNG(42)
>>> a = [rng.next() for _ in range(3)]
>>> rng = SeededRNG(42)
>>> a == [rng.next() for _ in range(3)]
True

Design Notes
------------
- Python integers never overflow, so every intermediate value is masked with
  ``_MASK32`` to emulate unsigned 32-bit multiply-and-xor.
- No method consults the wall clock, ``random`` or any shared state; callers
  must create one generator per generation call.
"""

from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

__all__ = ["SeededRNG", "hash_string", "star_hash", "star_to_seed"]

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_GOLDEN_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0

# ``gaussian`` floors its first uniform draw here so ``log(0)`` is impossible.
_MIN_UNIFORM = 1e-12


def _imul(a: int, b: int) -> int:
    """Return the low 32 bits of ``a * b``."""

    return (a * b) & _MASK32


class SeededRNG:
    """Mulberry32 generator with helpers for musical choices."""

    def __init__(self, seed: float) -> None:
        raw = math.floor(abs(seed) * _MASK32)
        self.state = (raw & _MASK32) if raw else 1

    def next(self) -> float:
        """Advance the state and return a float in ``[0, 1)``."""

        self.state = (self.state + _GOLDEN_INCREMENT) & _MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    def next_int(self, lo: int, hi: int) -> int:
        """Return an integer in the inclusive range ``[lo, hi]``."""

        if lo > hi:
            raise ValueError(f"next_int range is empty: {lo} > {hi}")
        return math.floor(self.next() * (hi - lo + 1)) + lo

    def next_float(self, lo: float, hi: float) -> float:
        """Return a float between ``lo`` and ``hi``."""

        return self.next() * (hi - lo) + lo

    def pick(self, items: Sequence[T]) -> T:
        """Return one element of ``items`` chosen uniformly."""

        if not items:
            raise ValueError("cannot pick from an empty sequence")
        return items[math.floor(self.next() * len(items))]

    def weighted_pick(self, items: Sequence[T], weights: Sequence[float]) -> T:
        """Return an element of ``items`` chosen by cumulative ``weights``.

        Weights are relative and need not sum to one.  When they sum to zero
        (or less) no draw can land on any item, so the last item is returned
        instead of raising.

        Raises
        ------
        ValueError
            If ``items`` is empty or the two sequences differ in length.
        """

        if not items:
            raise ValueError("cannot pick from an empty sequence")
        if len(items) != len(weights):
            raise ValueError("items and weights must have the same length")

        total = float(sum(weights))
        if total <= 0:
            return items[-1]
        r = self.next() * total
        for item, weight in zip(items, weights):
            r -= weight
            if r <= 0:
                return item
        return items[-1]

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""

        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = math.floor(self.next() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def gaussian(self, mean: float = 0.0, stddev: float = 1.0) -> float:
        """Return a normally distributed value using the Box-Muller transform."""

        u1 = max(self.next(), _MIN_UNIFORM)
        u2 = self.next()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * stddev + mean


def _to_int32(value: int) -> int:
    """Reinterpret the low 32 bits of ``value`` as a signed integer."""

    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def hash_string(text: str) -> int:
    """Return a non-negative 32-bit hash of ``text``.

    Uses the classic ``hash * 31 + code`` recurrence with signed 32-bit
    wraparound and returns the absolute value.
    """

    h = 0
    for char in text:
        h = _to_int32((h << 5) - h + ord(char))
    return abs(h)


def _coordinate_text(value: float) -> str:
    return repr(float(value))


def star_hash(star_id: str, ra: float, dec: float) -> int:
    """Return a stable identity hash for a star.

    The hash depends only on catalogue identity (id and position), never on a
    generation seed, so any per-star choice derived from it survives re-seeding.
    """

    return hash_string(f"{star_id}{_coordinate_text(ra)}{_coordinate_text(dec)}")


def star_to_seed(star_id: str, ra: float, dec: float) -> int:
    """Derive the default generation seed for a star."""

    id_hash = hash_string(star_id)
    coord_hash = _to_int32(math.floor(ra * 1000 + dec * 10000))
    return abs(_to_int32(id_hash ^ coord_hash))
