"""Escape-time iteration kernel.

All functions here are compiled with numba and release the GIL, so pixel loops
can run on several threads of one render call at once. The bulb tests are
selected with plain integer flags (see ``BulbTest``); pass ``int(flags)`` into
the compiled functions.
"""
from __future__ import annotations

import enum
import math
import sys

from numba import njit

_CARDIOID = 1
_PERIOD2 = 2

_LOG2 = math.log(2.0)

# Escaped points whose smoothed value would be <= 0 are clamped to this, so
# that 0 keeps meaning "presumed member of the set".
ESCAPE_FLOOR = sys.float_info.min


class BulbTest(enum.IntFlag):
    NONE = 0
    CARDIOID = _CARDIOID
    PERIOD2 = _PERIOD2
    BOTH = _CARDIOID | _PERIOD2


@njit(cache=True, nogil=True)
def in_cardioid(cr, ci):
    x4 = cr - 0.25
    y2 = ci * ci
    q = x4 * x4 + y2
    return q * (q + x4) < y2 * 0.25


@njit(cache=True, nogil=True)
def in_period2_bulb(cr, ci):
    return (cr + 1.0) * (cr + 1.0) + ci * ci < 0.0625


@njit(cache=True, nogil=True)
def escape_time(cr, ci, max_iter, tests):
    """Smoothed iteration count at which the orbit of c escapes, 0 if it never does."""
    if tests & _CARDIOID:
        if in_cardioid(cr, ci):
            return 0.0
    if tests & _PERIOD2:
        if in_period2_bulb(cr, ci):
            return 0.0

    zr = 0.0
    zi = 0.0
    zr2 = 0.0
    zi2 = 0.0
    for i in range(max_iter):
        zi = 2.0 * zr * zi + ci
        zr = zr2 - zi2 + cr
        zr2 = zr * zr
        zi2 = zi * zi
        m2 = zr2 + zi2
        if m2 > 4.0:
            return (i + 1) - math.log(math.log(math.sqrt(m2))) / _LOG2
    return 0.0


@njit(cache=True, nogil=True)
def iterate(cr, ci, max_iter, tests):
    """Escape time normalized into [0, 1)."""
    mu = escape_time(cr, ci, max_iter, tests)
    if mu == 0.0:
        return 0.0
    value = mu / (max_iter + 1)
    if value < ESCAPE_FLOOR:
        return ESCAPE_FLOOR
    return value


@njit(cache=True, nogil=True)
def fill_rect(buffer, stride, x, y, width, height, min_re, max_im, inc, max_iter, tests):
    for py in range(y, y + height):
        ci = max_im - py * inc
        row = py * stride
        for px in range(x, x + width):
            buffer[row + px] = iterate(min_re + px * inc, ci, max_iter, tests)


@njit(cache=True, nogil=True)
def _set_pixel(buffer, stride, px, py, min_re, max_im, inc, max_iter, tests):
    value = iterate(min_re + px * inc, max_im - py * inc, max_iter, tests)
    buffer[py * stride + px] = value
    return value != 0.0


@njit(cache=True, nogil=True)
def walk_circumference(buffer, stride, x, y, size, min_re, max_im, inc, max_iter, tests):
    """Render the boundary pixels of a square tile.

    Returns True if any of them escaped. The four edges are walked in one loop,
    each edge stopping one short so every corner is evaluated exactly once.
    """
    touched = False
    last = size - 1
    for i in range(last):
        if _set_pixel(buffer, stride, x + i, y, min_re, max_im, inc, max_iter, tests):
            touched = True
        if _set_pixel(buffer, stride, x + last, y + i, min_re, max_im, inc, max_iter, tests):
            touched = True
        if _set_pixel(buffer, stride, x + last - i, y + last, min_re, max_im, inc, max_iter, tests):
            touched = True
        if _set_pixel(buffer, stride, x, y + last - i, min_re, max_im, inc, max_iter, tests):
            touched = True
    return touched
