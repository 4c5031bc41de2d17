"""Escape-time iteration for z <- z^2 + c."""

from __future__ import annotations

import numpy as np
from mpmath import mpc

# |z| > 2 tested as |z|^2 > 4.
ESCAPE_RADIUS_SQ = 4


def escape_time(cx, cy, max_iterations: int) -> int:
    """
    Smallest i in [1, max_iterations) with |z_i|^2 > 4, or max_iterations
    when the orbit stays bounded. Arithmetic is done in numpy.longdouble.
    """
    cr = np.longdouble(cx)
    ci = np.longdouble(cy)
    zr = np.longdouble(0)
    zi = np.longdouble(0)
    for i in range(1, max_iterations):
        zr, zi = zr * zr - zi * zi + cr, 2 * zr * zi + ci
        if zr * zr + zi * zi > ESCAPE_RADIUS_SQ:
            return i
    return max_iterations


def escape_time_row(cx: np.ndarray, cy, max_iterations: int) -> np.ndarray:
    """
    escape_time applied to every real part in `cx` with the shared
    imaginary part `cy`. Escaped points are frozen so their orbits never
    overflow; the loop ends as soon as nothing is left active.
    """
    cr = np.asarray(cx, dtype=np.longdouble)
    ci = np.longdouble(cy)
    zr = np.zeros_like(cr)
    zi = np.zeros_like(cr)
    counts = np.full(cr.shape, max_iterations, dtype=np.int64)
    active = np.ones(cr.shape, dtype=bool)

    for i in range(1, max_iterations):
        ar = zr[active]
        ai = zi[active]
        nr = ar * ar - ai * ai + cr[active]
        ni = 2 * ar * ai + ci
        zr[active] = nr
        zi[active] = ni

        escaped = np.zeros_like(active)
        escaped[active] = nr * nr + ni * ni > ESCAPE_RADIUS_SQ
        counts[escaped] = i
        active &= ~escaped
        if not active.any():
            break
    return counts


def escape_time_mp(cx, cy, max_iterations: int) -> int:
    """escape_time evaluated with mpmath at the current mp.dps."""
    c = mpc(cx, cy)
    z = mpc(0, 0)
    for i in range(1, max_iterations):
        z = z * z + c
        if z.real * z.real + z.imag * z.imag > ESCAPE_RADIUS_SQ:
            return i
    return max_iterations
