import logging

import numpy as np
import pytest
from mpmath import mpf

from mandelbmp.buffer import Pixel, PixelBuffer, PlaneRegion


def test_allocates_exact_pixel_count():
    buf = PixelBuffer(7, 3)
    assert len(buf) == 21
    assert buf.pixels.shape == (3, 7, 3)
    assert not buf.pixels.any()


@pytest.mark.parametrize("width, height", [(0, 1), (1, 0), (-3, 4)])
def test_rejects_empty_dimensions(width, height):
    with pytest.raises(ValueError):
        PixelBuffer(width, height)


def test_set_and_get_row_major():
    buf = PixelBuffer(4, 2)
    assert buf.set(5, Pixel(1, 2, 3))
    assert buf.get(5) == Pixel(1, 2, 3)
    assert tuple(buf.pixels[1, 1]) == (1, 2, 3)


@pytest.mark.parametrize("idx", [-1, 8, 100])
def test_out_of_range_write_is_rejected(idx, caplog):
    buf = PixelBuffer(4, 2)
    with caplog.at_level(logging.DEBUG, logger="mandelbmp"):
        assert buf.set(idx, Pixel(9, 9, 9)) is False
    assert not buf.pixels.any()
    assert "Rejected write" in caplog.text


def test_last_index_is_writable():
    buf = PixelBuffer(4, 2)
    assert buf.set(7, (5, 6, 7))
    assert buf.get(7) == (5, 6, 7)


def test_out_of_range_read_raises():
    with pytest.raises(IndexError):
        PixelBuffer(2, 2).get(4)


def test_pixels_view_is_read_only():
    buf = PixelBuffer(2, 2)
    with pytest.raises(ValueError):
        buf.pixels[0, 0] = (1, 1, 1)


def test_rows_view_writes_through():
    buf = PixelBuffer(3, 4)
    band = buf.rows(1, 3)
    band[:] = 200
    assert not buf.pixels[0].any()
    assert (buf.pixels[1:3] == 200).all()
    assert not buf.pixels[3].any()


@pytest.mark.parametrize("start, stop", [(-1, 2), (2, 1), (0, 5)])
def test_rows_rejects_bad_range(start, stop):
    with pytest.raises(ValueError):
        PixelBuffer(3, 4).rows(start, stop)


def test_region_conversions():
    region = PlaneRegion("-0.75", 0.25, mpf("-0.5"), np.longdouble("0.5"))
    native = region.native()
    assert all(isinstance(v, np.longdouble) for v in native)
    assert native[0] == np.longdouble("-0.75")
    arbitrary = region.arbitrary()
    assert all(isinstance(v, mpf) for v in arbitrary)
    assert arbitrary == (mpf("-0.75"), mpf("0.25"), mpf("-0.5"), mpf("0.5"))
    assert region.bounds() == ("-0.75", 0.25, mpf("-0.5"), np.longdouble("0.5"))
