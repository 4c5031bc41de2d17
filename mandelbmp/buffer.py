from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Tuple

import numpy as np
from mpmath import mpf

from mandelbmp.util.logging_setup import get_logger


class Pixel(NamedTuple):
    """One 24-bit color, stored red-green-blue."""

    red: int
    green: int
    blue: int


def _to_longdouble(value: Any) -> np.longdouble:
    if isinstance(value, (str, mpf, np.floating)):
        return np.longdouble(str(value))
    return np.longdouble(value)


def _to_mpf(value: Any) -> mpf:
    if isinstance(value, mpf):
        return value
    if isinstance(value, (str, np.floating)):
        return mpf(str(value))
    return mpf(value)


@dataclass(frozen=True)
class PlaneRegion:
    """
    Rectangle of the complex plane mapped onto the pixel buffer.

    Bounds keep whatever representation the caller supplied (float, decimal
    string or mpf) so that each rendering path can convert them at its own
    precision. Ordering and finiteness are checked by the caller, see
    config.validate_region.
    """

    x_min: Any
    x_max: Any
    y_min: Any
    y_max: Any

    def bounds(self) -> Tuple[Any, Any, Any, Any]:
        return (self.x_min, self.x_max, self.y_min, self.y_max)

    def native(self) -> Tuple[np.longdouble, np.longdouble, np.longdouble, np.longdouble]:
        return (
            _to_longdouble(self.x_min),
            _to_longdouble(self.x_max),
            _to_longdouble(self.y_min),
            _to_longdouble(self.y_max),
        )

    def arbitrary(self) -> Tuple[mpf, mpf, mpf, mpf]:
        # Converted at the current mp.dps; see util.precision.working_digits.
        return (
            _to_mpf(self.x_min),
            _to_mpf(self.x_max),
            _to_mpf(self.y_min),
            _to_mpf(self.y_max),
        )


class PixelBuffer:
    """
    Row-major W*H pixel storage backed by a (height, width, 3) uint8 array.

    Row 0 is the top row as generated. Single-pixel writes are bounds
    checked: an index outside [0, W*H) is rejected and `set` returns False.
    Workers write through `rows`, each into its own row range.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)
        self._data = np.zeros((self._height, self._width, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def __len__(self) -> int:
        return self._width * self._height

    def __repr__(self) -> str:
        return f"PixelBuffer({self._width}x{self._height})"

    @property
    def pixels(self) -> np.ndarray:
        view = self._data.view()
        view.flags.writeable = False
        return view

    def get(self, idx: int) -> Pixel:
        if idx < 0 or idx >= len(self):
            raise IndexError(f"pixel index {idx} outside [0, {len(self)})")
        y, x = divmod(idx, self._width)
        r, g, b = self._data[y, x]
        return Pixel(int(r), int(g), int(b))

    def set(self, idx: int, pixel: Tuple[int, int, int]) -> bool:
        if idx < 0 or idx >= len(self):
            get_logger("buffer").debug("Rejected write at index %s outside [0, %s)", idx, len(self))
            return False
        y, x = divmod(idx, self._width)
        self._data[y, x] = pixel
        return True

    def rows(self, start: int, stop: int) -> np.ndarray:
        if not 0 <= start <= stop <= self._height:
            raise ValueError(f"row range [{start}, {stop}) outside [0, {self._height})")
        return self._data[start:stop]
