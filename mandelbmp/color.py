# color.py

import math

import numpy as np

from mandelbmp.buffer import Pixel

INTERIOR_COLOR = Pixel(41, 24, 82)

def color_for(iterations, max_iter):
    """
    Returns a Pixel for an escape count. Points that never escaped
    (iterations == max_iter) get INTERIOR_COLOR; everything else is a grey
    level floor(255 * sqrt(iterations / max_iter)), which spreads the low
    counts near the set boundary over more of the range.
    """
    if iterations == max_iter:
        return INTERIOR_COLOR

    level = int(math.floor(255 * math.sqrt(iterations / max_iter)))
    level = min(max(level, 0), 255)
    return Pixel(level, level, level)

def color_row(counts, max_iter):
    """Vectorised color_for: (n,) escape counts -> (n, 3) uint8 RGB."""
    counts = np.asarray(counts)
    levels = np.floor(255 * np.sqrt(counts / max_iter))
    levels = np.clip(levels, 0, 255).astype(np.uint8)
    out = np.repeat(levels[:, np.newaxis], 3, axis=1)
    out[counts == max_iter] = INTERIOR_COLOR
    return out
