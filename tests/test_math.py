import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from normalize import math as m


def test_percentile_and_peak():
    samples = [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]
    assert round(m.percentile(samples, 95), 2) == 59.05
    assert m.p100(samples) == 100


def test_percentile_errors():
    with pytest.raises(ValueError):
        m.percentile([], 50)
    with pytest.raises(ValueError):
        m.percentile([1, 2, 3], -1)


@pytest.mark.parametrize("x", [0.1, 1, 15.9, 16, 16.01, 34.13, 288.0, 1000.5, -0.1, -16, -17.5])
def test_round_is_idempotent(x):
    once = m.round_to_multiple(x, 16)
    assert m.round_to_multiple(once, 16) == once


@pytest.mark.parametrize("x", [0.001, 1, 15.99, 16, 16.5, 100, 287.9, 513])
def test_positive_rounds_up_within_one_step(x):
    r = m.round_to_multiple(x, 16)
    assert r >= x
    assert r - x < 16
    assert r % 16 == 0


@pytest.mark.parametrize("x", [-0.5, -16, -16.5, -100])
def test_negative_rounds_away_from_zero(x):
    r = m.round_to_multiple(x, 16)
    assert r <= x
    assert r % 16 == 0


def test_zero_maps_to_granularity():
    assert m.round_to_multiple(0, 16) == 16
    assert m.round_to_multiple(0.0, 32) == 32


def test_exact_multiple_unchanged():
    assert m.round_to_multiple(288.0, 16) == 288
    assert m.round_to_multiple(34.13, 16) == 48


def test_round_rejects_bad_input():
    with pytest.raises(ValueError):
        m.round_to_multiple(10, 0)
    with pytest.raises(ValueError):
        m.round_to_multiple(float('inf'), 16)
