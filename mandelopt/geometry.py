from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from mandelopt.request import RenderRequest


def _round_half_up_or_inf(value: float) -> float:
    if math.isinf(value):
        return value
    return math.floor(value + 0.5)


def _clamped(position: float, limit: int) -> int:
    return int(min(max(position, 0), limit))


@dataclass(frozen=True)
class Viewport:
    """Mapping between the pixel grid and the complex plane for one render.

    Pixel (0, 0) sits at (min_re, max_im). Columns grow to the right along the
    real axis, rows grow downward while the imaginary part decreases.
    """

    width: int
    height: int
    min_re: float
    max_im: float
    inc: float
    pixels_per_unit: float

    @classmethod
    def from_request(cls, request: RenderRequest) -> "Viewport":
        ppu = float(request.pixels_per_unit)
        width = int(request.width)
        height = int(request.height)
        return cls(
            width=width,
            height=height,
            min_re=float(request.center_re) - width / ppu / 2,
            max_im=float(request.center_im) + height / ppu / 2,
            inc=1 / ppu,
            pixels_per_unit=ppu,
        )

    def re_at(self, x: int) -> float:
        return self.min_re + x * self.inc

    def im_at(self, y: int) -> float:
        return self.max_im - y * self.inc

    def bounds(self, x: int, y: int, size_x: int, size_y: int) -> Tuple[float, float, float, float]:
        """(left_re, right_re, top_im, bottom_im) of the outermost pixels of a rectangle."""
        return (
            self.re_at(x),
            self.re_at(x + size_x - 1),
            self.im_at(y),
            self.im_at(y + size_y - 1),
        )

    def column_of(self, re: float) -> int:
        """Index of the first column whose real part is at or right of ``re``, rounded."""
        if re == -math.inf:
            return 0
        if re == math.inf:
            return self.width
        return _clamped(_round_half_up_or_inf((re - self.min_re) * self.pixels_per_unit), self.width)

    def row_of(self, im: float) -> int:
        """Index of the first row whose imaginary part is at or below ``im``, rounded."""
        if im == math.inf:
            return 0
        if im == -math.inf:
            return self.height
        return _clamped(_round_half_up_or_inf((self.max_im - im) * self.pixels_per_unit), self.height)
