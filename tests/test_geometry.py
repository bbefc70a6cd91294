"""Test the 2D vector primitives."""
import math

import pytest
from tactics.geometry import (add, angle_of, distance, distance_squared, length, length_squared,
                              normalize, rotate, scale, sub)


def test_basic_arithmetic():
    assert add((1, 2), (3, 4)) == (4, 6)
    assert sub((1, 2), (3, 4)) == (-2, -2)
    assert scale((1, -2), 3) == (3, -6)


def test_length_and_distance():
    assert length((3, 4)) == 5
    assert length_squared((3, 4)) == 25
    assert distance((1, 1), (4, 5)) == 5
    assert distance_squared((1, 1), (4, 5)) == 25


def test_normalize_unit_length():
    x, y = normalize((10, 0))
    assert (x, y) == (1, 0)
    assert length(normalize((3, -7))) == pytest.approx(1.0)


def test_normalize_zero_vector_falls_back_to_south():
    """Zero vector must not divide by zero or produce NaN."""
    v = normalize((0.0, 0.0))
    assert v == (0.0, 1.0)
    assert not any(math.isnan(c) for c in v)
    assert length(v) == pytest.approx(1.0)


def test_normalize_tiny_vector_falls_back():
    assert normalize((1e-9, -1e-9)) == (0.0, 1.0)


def test_rotate_counter_clockwise():
    x, y = rotate((1, 0), math.pi / 2)
    assert x == pytest.approx(0.0, abs=1e-12)
    assert y == pytest.approx(1.0)

    x, y = rotate((2, 0), math.pi)
    assert x == pytest.approx(-2.0)
    assert y == pytest.approx(0.0, abs=1e-12)


def test_angle_of():
    assert angle_of((1, 0)) == 0
    assert angle_of((0, 1)) == pytest.approx(math.pi / 2)
    assert angle_of((-1, 0)) == pytest.approx(math.pi)
