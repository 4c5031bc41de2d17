import math

import numpy as np
import pytest

from mandelbmp.color import INTERIOR_COLOR, color_for, color_row


@pytest.mark.parametrize("max_iter", [1, 2, 100, 5000])
def test_interior_color(max_iter):
    assert color_for(max_iter, max_iter) == (41, 24, 82)
    assert color_for(max_iter, max_iter) == INTERIOR_COLOR


def test_grey_levels():
    assert color_for(1, 100) == (25, 25, 25)
    assert color_for(25, 100) == (127, 127, 127)
    assert color_for(99, 100) == (253, 253, 253)


def test_monotonic_below_bound():
    max_iter = 100
    levels = [color_for(i, max_iter).red for i in range(1, max_iter)]
    assert levels == sorted(levels)
    assert all(0 <= v <= 255 for v in levels)


def test_escaped_points_are_grey():
    for i in range(1, 50):
        r, g, b = color_for(i, 50)
        assert r == g == b == math.floor(255 * math.sqrt(i / 50))


def test_color_row_matches_scalar():
    max_iter = 64
    counts = np.arange(1, max_iter + 1)
    rows = color_row(counts, max_iter)
    assert rows.dtype == np.uint8
    assert rows.shape == (max_iter, 3)
    assert [tuple(int(v) for v in px) for px in rows] == [tuple(color_for(i, max_iter)) for i in counts]
