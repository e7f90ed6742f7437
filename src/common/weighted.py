from __future__ import annotations

import random
from typing import List, Sequence, Tuple


# Value v in 1..8 has weight 9 - v, so small factors dominate and the
# product weather * fertility * water stays small on average.
PLANT_FACTOR_WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 1)

# Time factor in 1..2.
GROW_TIME_WEIGHTS: Tuple[int, ...] = (2, 1)


def _validate_weights(weights: Sequence[int]) -> None:
    if not weights:
        raise ValueError("weights must not be empty")
    if any(w <= 0 for w in weights):
        raise ValueError("weights must be positive")
    if any(b > a for a, b in zip(weights, weights[1:])):
        raise ValueError("weights must be non-increasing")


def weighted_draw(weights: Sequence[int], rng: random.Random, *, start: int = 1) -> int:
    """Draw one integer from `start .. start + len(weights) - 1`.

    The value at offset `i` is chosen with probability `weights[i] / sum(weights)`.
    The only state touched is `rng`, so a seeded `random.Random` gives a
    reproducible sequence.
    """
    _validate_weights(weights)
    total = sum(weights)
    remaining = rng.random() * total
    for i, w in enumerate(weights):
        remaining -= w
        if remaining <= 0:
            return start + i
    return start


def plant_factors(rng: random.Random) -> Tuple[int, int, int]:
    """Return (weather, fertility, water_level) for a new plant."""
    weather = weighted_draw(PLANT_FACTOR_WEIGHTS, rng)
    fertility = weighted_draw(PLANT_FACTOR_WEIGHTS, rng)
    water_level = weighted_draw(PLANT_FACTOR_WEIGHTS, rng)
    return weather, fertility, water_level


def grow_factors(rng: random.Random) -> List[int]:
    """Return the single time factor used by one grow call."""
    return [weighted_draw(GROW_TIME_WEIGHTS, rng)]


__all__ = [
    "GROW_TIME_WEIGHTS",
    "PLANT_FACTOR_WEIGHTS",
    "grow_factors",
    "plant_factors",
    "weighted_draw",
]
