from __future__ import annotations

from concurrent.futures import Executor
from typing import List, Optional, Tuple

from mandelopt.kernel import fill_rect
from mandelopt.renderers.canvas import Canvas, run_all

BAND_HEIGHT = 32


def row_bands(y: int, height: int, band_height: int = BAND_HEIGHT) -> List[Tuple[int, int]]:
    bands: List[Tuple[int, int]] = []
    end = y + height
    while y < end:
        y1 = min(end, y + band_height)
        bands.append((y, y1))
        y = y1
    return bands


def render_direct(
    canvas: Canvas,
    x: int,
    y: int,
    width: int,
    height: int,
    executor: Optional[Executor] = None,
) -> None:
    """Evaluate every pixel of a rectangle with the canvas' kernel."""
    if width <= 0 or height <= 0:
        return
    args = canvas.kernel_args()

    def fill_band(band: Tuple[int, int]) -> None:
        y0, y1 = band
        fill_rect(canvas.buffer, canvas.stride, x, y0, width, y1 - y0, *args)

    run_all(fill_band, row_bands(y, height), executor)
