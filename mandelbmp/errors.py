class MandelbmpError(Exception):
    """Base class for failures reported by mandelbmp."""


class InvalidRegionError(MandelbmpError, ValueError):
    """The plane region bounds are not ordered (x_min < x_max, y_min < y_max)."""


class BitmapWriteError(MandelbmpError):
    """The output sink could not be opened or fully written."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"Failed to write bitmap to {target}: {reason}")
        self.target = target
        self.reason = reason


class BitmapFormatError(MandelbmpError, ValueError):
    """Input bytes do not start with a 24-bit BMP header."""
