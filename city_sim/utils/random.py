"""
Random number generation utilities.

All pseudo-random choices in the simulation go through a
``numpy.random.Generator`` that is passed in explicitly, so a seeded
generator makes terrain and feed message selection reproducible.
"""

from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Create a generator for the simulation.

    Args:
        seed: Optional integer seed. ``None`` draws fresh OS entropy.

    Returns:
        numpy Generator instance
    """
    return np.random.default_rng(seed)


def choice(rng: np.random.Generator, seq: Sequence[T]) -> T:
    """Choose an element from a non-empty sequence."""
    if not seq:
        raise IndexError("Cannot choose from an empty sequence")
    return seq[int(rng.integers(len(seq)))]
