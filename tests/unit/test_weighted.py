from __future__ import annotations

import random
from collections import Counter

import pytest

from common.weighted import (
    GROW_TIME_WEIGHTS,
    PLANT_FACTOR_WEIGHTS,
    grow_factors,
    plant_factors,
    weighted_draw,
)


def test_draws_stay_in_range():
    rng = random.Random(7)
    for _ in range(500):
        v = weighted_draw(PLANT_FACTOR_WEIGHTS, rng)
        assert 1 <= v <= 8
    for _ in range(100):
        (t,) = grow_factors(rng)
        assert t in (1, 2)


def test_same_seed_same_sequence():
    a = [plant_factors(random.Random(42)) for _ in range(3)]
    b = [plant_factors(random.Random(42)) for _ in range(3)]
    assert a == b


def test_small_values_dominate():
    rng = random.Random(1234)
    counts = Counter(weighted_draw(PLANT_FACTOR_WEIGHTS, rng) for _ in range(20_000))
    # Expected share of 1 is 8/36, of 8 is 1/36.
    assert counts[1] > counts[4] > counts[8]
    assert counts[1] / 20_000 == pytest.approx(8 / 36, abs=0.02)


def test_extreme_rng_values_map_to_bounds():
    class Fixed(random.Random):
        value = 0.0

        def random(self) -> float:
            return self.value

    def fixed(value: float) -> Fixed:
        rng = Fixed()
        rng.value = value
        return rng

    assert weighted_draw(PLANT_FACTOR_WEIGHTS, fixed(0.0)) == 1
    assert weighted_draw(PLANT_FACTOR_WEIGHTS, fixed(0.9999)) == 8
    assert weighted_draw(GROW_TIME_WEIGHTS, fixed(0.9999)) == 2
    assert weighted_draw((3, 2), fixed(0.5), start=10) == 10


@pytest.mark.parametrize("weights", [(), (1, 0), (1, 2)])
def test_invalid_weights_rejected(weights):
    with pytest.raises(ValueError):
        weighted_draw(weights, random.Random(0))
